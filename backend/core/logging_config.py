"""
Centralized logging configuration for the legacy migration tool
- Rotating log files for the migration run and for errors
- Performance tracking for batch timing
- Automatic log file management
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from datetime import datetime, timedelta
import time

from core.config import settings

# Create logs directory if it doesn't exist (skip for console-only runs)
if settings.LOG_TO_FILE:
    LOGS_DIR = Path(settings.LOG_DIR) if settings.LOG_DIR else Path(__file__).parent.parent / "logs"
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
else:
    LOGS_DIR = None

class PerformanceLogger:
    """Logger specifically for tracking performance metrics"""

    def __init__(self):
        self.timers = {}

    def start_timer(self, operation: str) -> str:
        """Start timing an operation"""
        timer_id = f"{operation}_{int(time.time() * 1000)}"
        self.timers[timer_id] = time.time()
        return timer_id

    def end_timer(self, timer_id: str, context: str = "") -> float:
        """End timing and log the duration"""
        if timer_id not in self.timers:
            return 0.0

        duration_ms = (time.time() - self.timers[timer_id]) * 1000
        del self.timers[timer_id]

        perf_logger = logging.getLogger('performance')
        perf_logger.info(f"{timer_id.rsplit('_', 1)[0]}: {duration_ms:.1f}ms {context}")

        return duration_ms

def setup_console_logging():
    """Setup console-only logging (stderr)"""
    logger = logging.getLogger('migrate')
    logger.setLevel(settings.LOG_LEVEL)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(settings.LOG_LEVEL)
    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger

def setup_logging():
    """Setup logging configuration"""
    if not LOGS_DIR:
        return setup_console_logging()

    detailed_formatter = logging.Formatter(
        '%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s'
    )

    # 1. Main migration logger
    main_logger = logging.getLogger('migrate')
    main_logger.setLevel(logging.DEBUG)
    main_logger.handlers.clear()

    # Rotating file handler for main logs (10MB max, keep 5 files)
    main_handler = logging.handlers.RotatingFileHandler(
        LOGS_DIR / 'migrate.log',
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5
    )
    main_handler.setFormatter(detailed_formatter)
    main_handler.setLevel(logging.DEBUG)
    main_logger.addHandler(main_handler)

    # 2. Performance logger (separate file)
    perf_logger = logging.getLogger('performance')
    perf_logger.setLevel(logging.INFO)
    perf_logger.handlers.clear()

    perf_handler = logging.handlers.RotatingFileHandler(
        LOGS_DIR / 'performance.log',
        maxBytes=5*1024*1024,   # 5MB
        backupCount=3
    )
    perf_handler.setFormatter(simple_formatter)
    perf_logger.addHandler(perf_handler)

    # 3. Errors also land in their own file for easy monitoring
    error_handler = logging.handlers.RotatingFileHandler(
        LOGS_DIR / 'errors.log',
        maxBytes=5*1024*1024,   # 5MB
        backupCount=5
    )
    error_handler.setFormatter(detailed_formatter)
    error_handler.setLevel(logging.ERROR)
    main_logger.addHandler(error_handler)

    # Progress and warnings go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(simple_formatter)
    console_handler.setLevel(settings.LOG_LEVEL)
    main_logger.addHandler(console_handler)

    # Prevent duplicate logs
    main_logger.propagate = False
    perf_logger.propagate = False

    return main_logger

def cleanup_old_logs(days_to_keep: int = 7):
    """Remove log files older than specified days"""
    if not LOGS_DIR:
        return

    cutoff_date = datetime.now() - timedelta(days=days_to_keep)

    cleaned_count = 0
    for log_file in LOGS_DIR.glob("*.log*"):
        if log_file.stat().st_mtime < cutoff_date.timestamp():
            try:
                log_file.unlink()
                cleaned_count += 1
            except OSError:
                pass  # File might be in use

    if cleaned_count > 0:
        logger = logging.getLogger('migrate')
        logger.info(f"Cleaned up {cleaned_count} old log files")

# Global performance logger instance
performance_logger = PerformanceLogger()

# Auto-setup logging when module is imported
logger = setup_logging()

cleanup_old_logs()
