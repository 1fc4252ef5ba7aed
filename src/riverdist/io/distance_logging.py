# io/distance_logging.py
import json
import logging
import sys

from riverdist.domain.hooks import NoopHooks


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, default=str)


def _default_json_logger(name="riverdist", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(level)
    return logger


class DistanceLogging(NoopHooks):
    """
    Structured JSON logs for the point-set lifecycle.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.run_id, self.debug = run_id, debug
        self.log = logger or _default_json_logger(level=level)
        self._computed = 0

    # --------------- Helpers -----------------------------

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id}
        self.log.log(getattr(logging, level), msg, extra={"extra": {**payload, **extra}})

    # --------------------------------------------------------

    def points_set(self, *, n: int):
        self._emit("INFO", "points_set", n=n)

    def compute_start(self, *, n: int, segments, metric: str):
        if self.debug:
            self._emit("DEBUG", "compute_start", n=n, segments=len(segments), metric=metric)

    def compute_end(self, *, n: int, connected_pairs: int, disconnected_pairs: int, wall_ms: float):
        self._computed += 1
        self._emit(
            "INFO",
            "distances_computed",
            n=n,
            connected_pairs=connected_pairs,
            disconnected_pairs=disconnected_pairs,
            wall_ms=round(wall_ms, 3),
            seq=self._computed,
        )

    def error(self, *, stage: str, exc: BaseException, **extra):
        self._emit("ERROR", f"{stage}_error", error=str(exc), error_type=type(exc).__name__, **extra)
