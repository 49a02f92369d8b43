"""zhaomu - daily todos/notes service with a shareable progress card.

The package keeps top-level imports light: the aiohttp server and the Pillow
renderer are only imported when the server starts or a card is rendered.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream colorized output to the console.

    Honors the ZHAOMU_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on") which forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("ZHAOMU_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message  (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the zhaomu HTTP server.

    Behavior:
    - Initialize console logging early using ZHAOMU_LOG_LEVEL (env) if present.
    - Build the configuration from ``.env`` and the environment.
    - Apply command line overrides (``--port``, ``--debug``).
    - Delegate to ``zhaomu.api.server.start_server`` which blocks until shutdown.
    """
    import logging
    import os

    _init_logging(os.environ.get("ZHAOMU_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from zhaomu.api import server
    from zhaomu.core.config_manager import ConfigManager

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            try:
                cfg["server_port"] = int(port)
                logger.debug("Applied command line port override: %d", cfg["server_port"])
            except (ValueError, TypeError) as e:
                logger.warning("Invalid port value from command line '%s': %s", port, e)
        if getattr(args, "debug", False):
            cfg["debug_logging"] = True

    # Only surface non-secret keys in startup diagnostics.
    diagnostic_cfg = {
        k: cfg.get(k) for k in ("server_bind", "server_port", "timezone", "public_url")
    }
    logger.debug("Resolved configuration (diagnostic): %s", diagnostic_cfg)

    server.start_server(cfg)
