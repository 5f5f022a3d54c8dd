import logging, json, sys, time, os

LOG_LEVEL_ENV = "FILOSIGN_LOG_LEVEL"
LOG_FILE_ENV = "FILOSIGN_LOG_FILE"


def _resolve_level(level) -> int:
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return level


def get_logger(name="FiloSign", level=None, to_file=None):
    """
    Unified structured logger for all FiloSign components.

    ``level`` may be an int or a level name; when omitted it comes from
    FILOSIGN_LOG_LEVEL (default INFO). ``to_file`` falls back to
    FILOSIGN_LOG_FILE. Handlers are attached once per logger name.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt=json.dumps({
                "ts": "%(asctime)s",
                "level": "%(levelname)s",
                "name": "%(name)s",
                "msg": "%(message)s"
            }),
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
        formatter.converter = time.gmtime  # UTC
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        to_file = to_file or os.getenv(LOG_FILE_ENV)
        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
