# -*- coding: utf-8 -*-
"""
Sistema de logging compartido: consola con colores, archivo opcional y Logfire.
"""
from .logger_config import (
    setup_logging,
    get_logger,
    setup_logfire_global,
    add_logfire_to_logger,
    get_logfire_instance,
    is_logfire_globally_enabled
)
from .custom_logger import AppLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "setup_logfire_global",
    "add_logfire_to_logger",
    "get_logfire_instance",
    "is_logfire_globally_enabled",
    "AppLogger"
]
