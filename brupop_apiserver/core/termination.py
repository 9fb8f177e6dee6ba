"""Write the last-gasp diagnostic Kubernetes surfaces as the container's termination message."""

from pathlib import Path
from typing import Optional

from brupop_apiserver.common.env_vars import get_termination_log_path
from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import StartupError

logger = make_logger(logger_name())


class TerminationLogWriteError(RuntimeError):
    """
    Thrown when the termination log can't be written. There is nowhere left to report this.
    """


def write_termination_log(error: StartupError, path: Optional[str] = None) -> str:
    """Overwrites the termination log with the rendered error and returns the path written."""
    termination_log = path or get_termination_log_path()
    try:
        Path(termination_log).write_text(error.describe(), encoding="utf-8")
    except OSError as exc:
        raise TerminationLogWriteError(
            f"Could not write k8s termination log {termination_log}: {exc}"
        ) from exc
    logger.info(f"Wrote termination log to {termination_log}")
    return termination_log
