import logging
import os
import sys

# Opcional: color para consola
class LogColors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"

class Logger:
    _configured = False  # Para evitar configurar el logger más de una vez

    @staticmethod
    def get_logger(name: str = "TradingBots"):
        if not Logger._configured:
            Logger._configure_root_logger()
        return logging.getLogger(name)

    @staticmethod
    def _configure_root_logger():
        formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        # Handler para consola (stdout) con colores por nivel
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(colorize_log)

        # Nivel desde el entorno sin importar config (evita ciclos de import)
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.addHandler(console_handler)

        Logger._configured = True

# Colores por nivel; se aplica solo al handler de consola
def colorize_log(record):
    color = {
        logging.INFO: LogColors.GREEN,
        logging.WARNING: LogColors.YELLOW,
        logging.ERROR: LogColors.RED,
        logging.DEBUG: LogColors.BLUE,
    }.get(record.levelno)
    if color and sys.stdout.isatty():
        record.msg = f"{color}{record.getMessage()}{LogColors.RESET}"
        record.args = ()
    return True
