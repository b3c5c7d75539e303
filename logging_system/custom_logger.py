# -*- coding: utf-8 -*-
import logging
from datetime import datetime
from typing import Optional, Dict, Any
from .logger_config import (
    get_logger,
    add_logfire_to_logger,
    get_logfire_instance,
    is_logfire_globally_enabled,
)

_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class AppLogger:
    """Envoltorio de logging.Logger con contadores por nivel y spans de Logfire."""

    def __init__(self, name: str, enable_logfire: Optional[bool] = None, logfire_config: Optional[Dict[str, Any]] = None):
        self._logger = get_logger(name)

        # Si no se especifica, seguir la configuración global de setup_logging()
        self._enable_logfire = is_logfire_globally_enabled() if enable_logfire is None else enable_logfire

        self._logfire_instance = None
        if self._enable_logfire and add_logfire_to_logger(name, logfire_config):
            tags = logfire_config.get('tags') if logfire_config else None
            self._logfire_instance = get_logfire_instance(tags)

        self._stats: Dict[str, Any] = {}
        self.reset_stats()

    @property
    def name(self) -> str:
        return self._logger.name

    def _record(self, level: str, message: str) -> None:
        now = datetime.now().isoformat()
        self._stats['total_logs'] += 1
        self._stats['level_counts'][level] += 1
        self._stats['last_log_time'] = now
        if level in ('ERROR', 'CRITICAL'):
            self._stats['last_error'] = message
            self._stats['last_error_time'] = now

    def debug(self, message: str, **extra):
        self._record('DEBUG', message)
        self._logger.debug(message, extra=extra)

    def info(self, message: str, **extra):
        self._record('INFO', message)
        self._logger.info(message, extra=extra)

    def warning(self, message: str, **extra):
        self._record('WARNING', message)
        self._logger.warning(message, extra=extra)

    def error(self, message: str, exc_info: bool = False, **extra):
        self._record('ERROR', message)
        self._logger.error(message, exc_info=exc_info, extra=extra)

    def critical(self, message: str, exc_info: bool = False, **extra):
        self._record('CRITICAL', message)
        self._logger.critical(message, exc_info=exc_info, extra=extra)

    def span(self, message: str, **attributes):
        """
        Crea un span de Logfire si está habilitado; si no, registra un log
        normal y devuelve un span vacío para poder usarlo con `with`.
        """
        if self._logfire_instance:
            return self._logfire_instance.span(message, **attributes)
        self.debug(f"SPAN: {message}", **attributes)
        return DummySpan()

    def is_logfire_enabled(self) -> bool:
        return bool(self._enable_logfire and self._logfire_instance is not None)

    def stats(self) -> Dict[str, Any]:
        """Devuelve estadísticas y configuración relevante del logger."""
        return {
            'logger_name': self._logger.name,
            'effective_level': logging.getLevelName(self._logger.getEffectiveLevel()),
            'total_logs': self._stats['total_logs'],
            'level_counts': dict(self._stats['level_counts']),
            'start_time': self._stats['start_time'],
            'last_log_time': self._stats['last_log_time'],
            'last_error': self._stats['last_error'],
            'last_error_time': self._stats['last_error_time'],
            'logfire_enabled': self.is_logfire_enabled(),
        }

    def reset_stats(self):
        self._stats = {
            'start_time': datetime.now().isoformat(),
            'total_logs': 0,
            'level_counts': {level: 0 for level in _LEVELS},
            'last_log_time': None,
            'last_error': None,
            'last_error_time': None,
        }


class DummySpan:
    """Span vacío para cuando Logfire no está disponible."""
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass
