import logging
import sys
from pathlib import Path

from kanban_access.core import get_settings

# Директория для файлов логов
log_dir = Path(__file__).parent


def setup_logging(name: str = "api_logger") -> logging.Logger:
    """Configure the server logger: console always, file when enabled"""
    settings = get_settings()

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Повторный импорт не должен дублировать обработчики
    if logger.handlers:
        return logger

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_TO_FILE:
        log_dir.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "api_requests.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Экземпляр логгера сервера
api_logger = setup_logging()
