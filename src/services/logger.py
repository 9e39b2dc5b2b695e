"""
Spelling Word Collector Logging System

Clean terminal output for production + detailed file logging for debugging.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Any, Dict
import json


class SpellingLogger:
    """
    Two-mode logging system:
    - Terminal: Clean, timestamped key events only
    - Debug file: Full detailed logs for troubleshooting
    """

    def __init__(self, debug_mode: bool = False, settings=None, log_dir: str = "logs"):
        self.debug_mode = debug_mode
        self.settings = settings
        self.log_dir = Path(log_dir)

        # Setup JSON log files for structured logging
        if settings and (settings.debug_storage or settings.debug_api_calls):
            self.debug_log_dir = Path(settings.debug_log_dir)
            self.debug_log_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            if settings.debug_storage:
                self.storage_log = self.debug_log_dir / f"storage_{timestamp}.jsonl"
            if settings.debug_api_calls:
                self.api_calls_log = self.debug_log_dir / f"api_calls_{timestamp}.jsonl"

        # Setup file logger for debug mode
        if debug_mode:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = self.log_dir / f"spelling_debug_{timestamp}.txt"

            self.file_logger = logging.getLogger("spelling_debug")
            self.file_logger.setLevel(logging.DEBUG)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.file_logger.addHandler(file_handler)

            print(f"📝 Debug mode enabled. Logging to: {log_file}")

    def _timestamp(self) -> str:
        """Get formatted timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _terminal_log(self, emoji: str, message: str, color: str = ""):
        """Print clean log to terminal"""
        timestamp = self._timestamp()

        # ANSI color codes
        colors = {
            "green": "\033[92m",
            "blue": "\033[94m",
            "yellow": "\033[93m",
            "red": "\033[91m",
            "cyan": "\033[96m",
            "reset": "\033[0m"
        }

        color_code = colors.get(color, "")
        reset = colors["reset"] if color_code else ""

        print(f"{color_code}[{timestamp}] {emoji} {message}{reset}")

    def _debug_log(self, level: str, component: str, message: str, data: Optional[dict] = None):
        """Write detailed log to debug file"""
        if self.debug_mode and hasattr(self, 'file_logger'):
            log_msg = f"{component} | {message}"
            if data:
                log_msg += f" | Data: {data}"

            log_func = getattr(self.file_logger, level.lower(), self.file_logger.info)
            log_func(log_msg)

    # ===== Family Events =====

    def family_created(self, family_id: str, join_code: str, with_email: bool = False):
        """Log a new family"""
        msg = f"Family created: {family_id[:8]} (code {join_code})"
        if with_email:
            msg += " - join code email queued"
        self._terminal_log("🏠", msg, "green")
        self._debug_log("info", "FAMILY", "Created", {
            "family_id": family_id,
            "with_email": with_email
        })

    def family_joined(self, family_id: str):
        """Log a device joining a family"""
        self._terminal_log("🔗", f"Device joined family {family_id[:8]}", "cyan")
        self._debug_log("info", "FAMILY", "Joined", {"family_id": family_id})

    def session_recorded(self, family_id: str, profile_id: Optional[str], word_count: int):
        """Log a finished practice session"""
        who = f"profile {profile_id[:8]}" if profile_id else "anonymous"
        self._terminal_log("✏️", f"Session recorded: {word_count} words ({who})", "blue")
        self._debug_log("info", "SESSION", "Recorded", {
            "family_id": family_id,
            "profile_id": profile_id,
            "word_count": word_count
        })

    def streak_updated(self, profile_id: str, count: int, previous: int):
        """Log a streak change"""
        if count == previous:
            return
        emoji = "🔥" if count > previous else "🌱"
        self._terminal_log(emoji, f"Streak for {profile_id[:8]}: {previous} → {count}", "yellow")
        self._debug_log("info", "STREAK", "Updated", {
            "profile_id": profile_id,
            "count": count,
            "previous": previous
        })

    def migration_started(self, family_id: str, batch_id: str):
        """Log the start of a local→family migration"""
        self._terminal_log("📦", f"Migrating local data into family {family_id[:8]} (batch {batch_id[:8]})", "cyan")
        self._debug_log("info", "MIGRATION", "Started", {"family_id": family_id, "batch_id": batch_id})

    def migration_completed(self, family_id: str, counts: Dict[str, int]):
        """Log a finished migration"""
        summary = ", ".join(f"{v} {k}" for k, v in counts.items())
        self._terminal_log("✅", f"Migration into {family_id[:8]} done: {summary}", "green")
        self._debug_log("info", "MIGRATION", "Completed", {"family_id": family_id, **counts})

    def migration_failed(self, family_id: str, error: Exception):
        """Log a failed migration"""
        self._terminal_log("❌", f"Migration into {family_id[:8]} failed: {type(error).__name__}", "red")
        self._debug_log("error", "MIGRATION", "Failed", {
            "family_id": family_id,
            "error_type": type(error).__name__,
            "error_message": str(error)
        })

    # ===== General =====

    def error(self, component: str, message: str, error: Exception = None):
        """Log error"""
        msg = f"Error in {component}: {message}"
        if error:
            msg += f" ({type(error).__name__})"
        self._terminal_log("⚠️", msg, "red")
        self._debug_log("error", component, message, {
            "error_type": type(error).__name__ if error else None,
            "error_message": str(error) if error else None
        })

    def info(self, message: str):
        """Log general info"""
        self._terminal_log("ℹ️", message)
        self._debug_log("info", "SYSTEM", message)

    def warning(self, message: str):
        """Log warning"""
        self._terminal_log("⚠️", message, "yellow")
        self._debug_log("warning", "SYSTEM", message)

    def debug(self, component: str, message: str, data: Optional[dict] = None):
        """Log debug information (file only)"""
        if self.debug_mode:
            self._debug_log("debug", component, message, data)

    # ===== Debug Logging Methods =====

    def _write_json_log(self, log_file: Path, data: Dict[str, Any]):
        """Write structured JSON log entry"""
        try:
            with open(log_file, 'a') as f:
                json.dump(data, f)
                f.write('\n')
        except OSError as e:
            self.error("LOGGER", f"Failed to write JSON log: {e}")

    def storage_operation(self, operation: str, path: str, data_summary: str,
                          size_bytes: int = 0, duration: Optional[float] = None):
        """Log storage write/update operations"""
        # Skip if debug flag not enabled
        if not self.settings or not self.settings.debug_storage:
            return

        duration_str = f" in {duration*1000:.0f}ms" if duration else ""
        msg = f"Storage {operation.upper()} → {path} ({size_bytes} bytes){duration_str}"
        self._terminal_log("💾", msg, "yellow")

        log_data = {
            "timestamp": datetime.now().isoformat(),
            "type": "storage_operation",
            "operation": operation,
            "path": path,
            "data_summary": data_summary,
            "size_bytes": size_bytes,
            "duration_seconds": duration
        }

        if hasattr(self, 'storage_log'):
            self._write_json_log(self.storage_log, log_data)

    def storage_read(self, path: str, result_summary: str, size_bytes: int = 0,
                     duration: Optional[float] = None):
        """Log storage read operations"""
        # Skip if debug flag not enabled
        if not self.settings or not self.settings.debug_storage:
            return

        duration_str = f" in {duration*1000:.0f}ms" if duration else ""
        msg = f"Storage READ ← {path} ({size_bytes} bytes){duration_str}"
        self._terminal_log("📖", msg, "blue")

        log_data = {
            "timestamp": datetime.now().isoformat(),
            "type": "storage_read",
            "path": path,
            "result_summary": result_summary,
            "size_bytes": size_bytes,
            "duration_seconds": duration
        }

        if hasattr(self, 'storage_log'):
            self._write_json_log(self.storage_log, log_data)

    def api_call(self, service: str, target: str, status: str = "success",
                 latency: Optional[float] = None, detail: str = ""):
        """Log an outbound call (mail dispatch, sentence generation)"""
        # Skip if debug flag not enabled
        if not self.settings or not self.settings.debug_api_calls:
            return

        latency_str = f" in {latency:.1f}s" if latency else ""
        msg = f"API {service} → {target}: {status}{latency_str}"

        emoji = "📡" if status == "success" else "⚠️"
        color = "green" if status == "success" else "yellow"
        self._terminal_log(emoji, msg, color)

        log_data = {
            "timestamp": datetime.now().isoformat(),
            "type": "api_call",
            "service": service,
            "target": target,
            "status": status,
            "latency_seconds": latency,
            "detail": detail
        }

        if hasattr(self, 'api_calls_log'):
            self._write_json_log(self.api_calls_log, log_data)


# Global logger instance
_logger: Optional[SpellingLogger] = None


def get_logger(settings=None) -> SpellingLogger:
    """Get global logger instance"""
    global _logger
    if _logger is None:
        # Check environment for debug mode
        import os
        debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"
        _logger = SpellingLogger(debug_mode=debug_mode, settings=settings)
    return _logger


def init_logger(debug_mode: bool = False, settings=None):
    """Initialize logger with specific debug mode and settings"""
    global _logger
    _logger = SpellingLogger(debug_mode=debug_mode, settings=settings)
    return _logger
