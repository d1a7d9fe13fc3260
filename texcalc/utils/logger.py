"""
日志模块（texcalc）

按等级输出到不同的轮转日志文件，日志目录可通过环境变量 TEXCALC_LOG_DIR 指定。
"""

import logging
import os
from logging.handlers import RotatingFileHandler


LOG_DIR_ENV = "TEXCALC_LOG_DIR"
DEFAULT_LOG_DIR = "logs"
LOGGER_NAME = "texcalc"

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
BRIEF_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class SafeRotatingFileHandler(RotatingFileHandler):
    """
    安全的日志轮转处理器。

    日志文件被其他进程占用时（常见于 Windows）轮转会失败，此时继续写当前文件。
    """

    def doRollover(self) -> None:
        try:
            super().doRollover()
        except (PermissionError, OSError):
            # 轮转失败时沿用当前日志文件
            pass


class Logger:
    """
    日志管理器。

    - debug/info/warning/error 四个等级分别写入独立文件。
    - logger 名称统一为 "texcalc"，子模块共用同一个 logger。
    """

    #: (文件后缀, 等级, 格式)
    LEVEL_FILES = (
        ("debug", logging.DEBUG, DETAILED_FORMAT),
        ("info", logging.INFO, BRIEF_FORMAT),
        ("warning", logging.WARNING, BRIEF_FORMAT),
        ("error", logging.ERROR, DETAILED_FORMAT),
    )

    def __init__(self, log_dir: str = DEFAULT_LOG_DIR, name: str = LOGGER_NAME) -> None:
        """
        初始化日志管理器。

        Args:
            log_dir: 日志输出目录。
            name: 日志名称前缀，同时作为日志文件名前缀。
        """
        self.log_dir = log_dir
        self.name = name

        os.makedirs(log_dir, exist_ok=True)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # 避免重复添加 handler
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self) -> None:
        """为每个等级创建一个轮转文件处理器。"""
        for suffix, level, fmt in self.LEVEL_FILES:
            handler = SafeRotatingFileHandler(
                os.path.join(self.log_dir, f"{self.name}_{suffix}.log"),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(fmt))
            self.logger.addHandler(handler)

    def get_logger(self) -> logging.Logger:
        """获取底层 logger 实例。"""
        return self.logger

    def close(self) -> None:
        """刷新并关闭所有处理器，释放日志文件句柄。"""
        for handler in list(self.logger.handlers):
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)


_LOGGER_INSTANCE: Logger | None = None


def get_logger(log_dir: str | None = None, name: str = LOGGER_NAME) -> logging.Logger:
    """
    获取全局 logger 实例（单例）。

    Args:
        log_dir: 日志输出目录，默认取环境变量 TEXCALC_LOG_DIR，未设置时为 "logs"。
        name: 日志名称前缀。
    """
    global _LOGGER_INSTANCE
    if _LOGGER_INSTANCE is None:
        if log_dir is None:
            log_dir = os.environ.get(LOG_DIR_ENV, DEFAULT_LOG_DIR)
        _LOGGER_INSTANCE = Logger(log_dir, name)
    return _LOGGER_INSTANCE.get_logger()


def close_logger() -> None:
    """关闭全局 logger 实例。"""
    global _LOGGER_INSTANCE
    if _LOGGER_INSTANCE is not None:
        _LOGGER_INSTANCE.close()
        _LOGGER_INSTANCE = None
