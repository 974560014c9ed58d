import signal
import threading
from typing import Callable, Optional

from app.config import GeneratorConfig, StartupConfigError, load_config
from app.event_bus import RabbitEventBus
from app.console import log
from app.scheduler import PhaseScheduler
from app.state import GeneratorState


def open_sink(config: GeneratorConfig) -> RabbitEventBus:
    return RabbitEventBus(config)


def install_signal_handlers(cancel: threading.Event) -> None:
    """Interrupt and terminate both request a clean stop."""
    def _handler(signum, frame):
        log(f"Received {signal.Signals(signum).name}, stopping...")
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def run_generator(
    config: GeneratorConfig,
    cancel: threading.Event,
    state: Optional[GeneratorState] = None,
    sink_factory: Optional[Callable[[GeneratorConfig], object]] = None,
) -> None:
    sink = (sink_factory or open_sink)(config)
    try:
        PhaseScheduler(state=state).run(sink, cancel)
    finally:
        sink.close()


def main(cancel: Optional[threading.Event] = None) -> int:
    try:
        config = load_config()
    except StartupConfigError as e:
        print(f"[generator] startup failed: {e}")
        return 2

    if cancel is None:
        cancel = threading.Event()
    install_signal_handlers(cancel)
    run_generator(config, cancel)
    return 0
