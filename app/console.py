from datetime import datetime


def log(msg: str, tag: str = "generator") -> None:
    print(f"[{tag}] {datetime.now():%Y-%m-%d %H:%M:%S} {msg}", flush=True)
