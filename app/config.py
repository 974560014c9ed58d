import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

DEFAULT_EXCHANGE = "generator.topic"
DEFAULT_OUTPUT = "output"
TRUTHY = {"1", "true", "True", "yes", "on"}


class StartupConfigError(Exception):
    """Missing or invalid connection parameters; nothing may be sent."""


@dataclass(frozen=True)
class GeneratorConfig:
    rabbitmq_url: str
    ca_cert_file: Optional[str] = None
    bypass_cert_verification: bool = False
    exchange: str = DEFAULT_EXCHANGE
    output_name: str = DEFAULT_OUTPUT

    @property
    def uses_tls(self) -> bool:
        return urlparse(self.rabbitmq_url).scheme == "amqps"

    def masked_url(self) -> str:
        u = urlparse(self.rabbitmq_url)
        if u.password is None:
            return self.rabbitmq_url
        netloc = u.netloc.replace(f":{u.password}@", ":****@", 1)
        return u._replace(netloc=netloc).geturl()


def load_config(environ: Optional[Mapping[str, str]] = None) -> GeneratorConfig:
    """
    Read connection parameters once at startup.

    With no mapping given, an optional .env file is merged into os.environ first.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    url = (environ.get("RABBITMQ_URL") or "").strip()
    if not url:
        raise StartupConfigError("Missing connection string: RABBITMQ_URL is not set")
    if urlparse(url).scheme not in {"amqp", "amqps"}:
        raise StartupConfigError(f"Unsupported connection string scheme in RABBITMQ_URL: {url.split(':', 1)[0]}")

    cert_path = (environ.get("RABBITMQ_CA_CERT_FILE") or "").strip() or None
    bypass = environ.get("RABBITMQ_BYPASS_CERT_VERIFICATION", "0") in TRUTHY

    config = GeneratorConfig(
        rabbitmq_url=url,
        ca_cert_file=cert_path,
        bypass_cert_verification=bypass,
        exchange=environ.get("GENERATOR_EXCHANGE", DEFAULT_EXCHANGE),
        output_name=environ.get("GENERATOR_OUTPUT", DEFAULT_OUTPUT),
    )

    # We cannot open a verified TLS connection without a proper cert file
    if config.uses_tls and not bypass:
        if not cert_path:
            raise StartupConfigError(f"Missing path to certificate file: {cert_path}")
        if not os.path.isfile(cert_path):
            raise StartupConfigError(f"Missing certificate file: {cert_path}")
    elif cert_path and not os.path.isfile(cert_path):
        raise StartupConfigError(f"Missing certificate file: {cert_path}")

    return config
