import ssl
from typing import Optional, Sequence

import pika
import pika.exceptions

from app.config import GeneratorConfig
from app.console import log

EXCHANGE_TYPE = "topic"


class TransportError(Exception):
    """A publish or commit to the broker failed."""


def build_ssl_options(config: GeneratorConfig, host: str) -> Optional[pika.SSLOptions]:
    if not config.uses_tls:
        return None
    if config.bypass_cert_verification:
        # During dev you might want to skip verification; verify certs in production
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    else:
        ctx = ssl.create_default_context(cafile=config.ca_cert_file)
        log(f"Trusting CA certificate: {config.ca_cert_file}", tag="event-bus")
    return pika.SSLOptions(ctx, server_hostname=host)


class RabbitEventBus:
    """
    Message sink publishing to a topic exchange, routed on the output name.

    The channel runs in AMQP transaction mode so a batch is committed as one unit.
    """

    def __init__(self, config: GeneratorConfig):
        self.config = config
        self.exchange = config.exchange
        self.output_name = config.output_name
        params = pika.URLParameters(config.rabbitmq_url)
        ssl_options = build_ssl_options(config, params.host)
        if ssl_options is not None:
            params.ssl_options = ssl_options
        log(f"Connecting to {config.masked_url()}", tag="event-bus")
        try:
            self.conn = pika.BlockingConnection(params)
            self.ch = self.conn.channel()
            # durable exchange so downstream bindings survive restarts of the generator
            self.ch.exchange_declare(exchange=self.exchange, exchange_type=EXCHANGE_TYPE, durable=True)
            self.ch.tx_select()
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Failed to connect to RabbitMQ: {e!r}") from e
        log("Message sink initialized.", tag="event-bus")

    def _publish(self, body: bytes) -> None:
        self.ch.basic_publish(
            exchange=self.exchange,
            routing_key=self.output_name,
            body=body,
            properties=pika.BasicProperties(
                content_type="text/plain",
                delivery_mode=2  # Make message persistent
            )
        )

    def send_one(self, payload: bytes) -> None:
        try:
            self._publish(payload)
            self.ch.tx_commit()
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Failed to publish message: {e!r}") from e

    def send_batch(self, payloads: Sequence[bytes]) -> None:
        if not payloads:
            return
        try:
            for body in payloads:
                self._publish(body)
            self.ch.tx_commit()
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Failed to publish batch of {len(payloads)}: {e!r}") from e

    def pump(self, time_limit: float = 0) -> None:
        """Service the connection (heartbeats, broker frames) between emissions."""
        try:
            self.conn.process_data_events(time_limit=time_limit)
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Lost connection while idle: {e!r}") from e

    def close(self):
        try:
            if self.ch.is_open:
                self.ch.close()
        except pika.exceptions.AMQPError:
            pass
        try:
            if self.conn.is_open:
                self.conn.close()
        except pika.exceptions.AMQPError:
            pass
