import logging

from surveyco.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

def configure_logging() -> None:
    root = logging.getLogger()
    if any(getattr(h, "_surveyco", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._surveyco = True
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
