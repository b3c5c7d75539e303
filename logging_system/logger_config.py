# -*- coding: utf-8 -*-
import logging, logfire, os, sys
from datetime import datetime
from typing import List, Union, Literal, Dict, Optional, Any
from colorama import Fore, Style, init

init(autoreset=True)

LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# Estado global de Logfire (lo consulta AppLogger al crearse)
_LOGFIRE_GLOBAL_ENABLED = False
_LOGFIRE_GLOBAL_MIN_LEVEL: LogLevel = 'WARNING'

# Librerías ruidosas que se silencian por defecto
_NOISY_LIBRARIES = (
    'asyncio',
    'httpx',
    'httpcore.http11',
    'httpcore.connection',
    'websockets.client',
    'solana.rpc',
)


class ColorFormatter(logging.Formatter):

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.BLUE,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA + Style.BRIGHT,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelno, "")
        message = super().format(record)
        return f"{color}{message}{Style.RESET_ALL}"


def _resolve_level(level: str, context: str = "") -> int:
    """Convierte 'INFO', 'debug', ... en el nivel numérico de logging."""
    if not isinstance(level, str) or not hasattr(logging, level.upper()):
        suffix = f" for {context}" if context else ""
        raise ValueError(f"Invalid log level{suffix}: {level}. Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL.")
    return getattr(logging, level.upper())


def setup_logging(
    console_output: bool = True,
    file_output: bool = False,
    log_directory: str = "logs",
    log_filename: str = "solana_watcher_%Y-%m-%d_%H-%M-%S.log",
    min_level_to_process: LogLevel = 'INFO',
    module_levels: Optional[Dict[str, LogLevel]] = None,
    enable_logfire: bool = False,
    logfire_config: Optional[Dict[str, Any]] = None,
    logfire_min_level: LogLevel = 'WARNING'
):
    """
    Configura el sistema de logging de la aplicación.

    Args:
        console_output: Si se deben mostrar logs (con colores) en consola
        file_output: Si se deben guardar logs en archivo
        log_directory: Directorio donde se guardarán los logs
        log_filename: Nombre del archivo de logs (admite formato strftime)
        min_level_to_process: Nivel mínimo general
        module_levels: Niveles específicos por logger
            Ejemplo: {'BalanceWatcher': 'DEBUG', 'AccountSubscriptionClient': 'WARNING'}
        enable_logfire: Si se debe habilitar Logfire
        logfire_config: Configuración de Logfire ('token', 'service_name', 'environment', 'service_version')
        logfire_min_level: Nivel mínimo que se envía a Logfire (por defecto WARNING)
    """
    level = _resolve_level(min_level_to_process)
    handlers: List[Union[logging.FileHandler, logging.StreamHandler]] = []

    if file_output:
        os.makedirs(log_directory, exist_ok=True)
        log_filepath = os.path.join(log_directory, datetime.now().strftime(log_filename))
        handlers.append(logging.FileHandler(log_filepath, encoding='utf-8'))

    if console_output:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(ColorFormatter('%(name)s - %(levelname)s - %(message)s'))
        handlers.append(stream_handler)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers or None
    )

    global _LOGFIRE_GLOBAL_ENABLED, _LOGFIRE_GLOBAL_MIN_LEVEL
    if enable_logfire:
        setup_logfire_global(logfire_config)
        _LOGFIRE_GLOBAL_ENABLED = True
        _LOGFIRE_GLOBAL_MIN_LEVEL = logfire_min_level
    else:
        _LOGFIRE_GLOBAL_ENABLED = False

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(_resolve_level(module_level, f"module {module_name}"))

    for lib in _NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)


def setup_logfire_global(logfire_config: Optional[Dict[str, Any]] = None):
    """
    Configura Logfire para toda la aplicación.

    El token se toma de logfire_config['token'] o, si no está, de la variable
    de entorno LOGFIRE_TOKEN.
    """
    config_kwargs: Dict[str, Any] = {}
    logfire_config = logfire_config or {}

    token = logfire_config.get('token') or os.environ.get('LOGFIRE_TOKEN')
    if token:
        config_kwargs['token'] = token
    else:
        logging.getLogger(__name__).warning("No Logfire token provided. Using default configuration.")

    for key in ('service_name', 'environment', 'service_version'):
        if key in logfire_config:
            config_kwargs[key] = logfire_config[key]

    try:
        logfire.configure(**config_kwargs)
    except Exception as e:
        logging.getLogger(__name__).error(f"Error configuring Logfire: {e}")
        return

    safe_config = {k: v for k, v in config_kwargs.items() if k != 'token'}
    logging.getLogger(__name__).debug(f"Logfire configured with: {safe_config}")


def add_logfire_to_logger(logger_name: str, logfire_config: Optional[Dict[str, Any]] = None) -> bool:
    """Añade un LogfireLoggingHandler al logger indicado. Devuelve True si se añadió."""
    logger = logging.getLogger(logger_name)
    if any(isinstance(h, logfire.LogfireLoggingHandler) for h in logger.handlers):
        return True

    min_level = (logfire_config or {}).get('min_level', _LOGFIRE_GLOBAL_MIN_LEVEL)
    logfire_handler = logfire.LogfireLoggingHandler()
    try:
        logfire_handler.setLevel(_resolve_level(min_level))
    except ValueError:
        logfire_handler.setLevel(logging.WARNING)

    logger.addHandler(logfire_handler)
    return True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def is_logfire_globally_enabled() -> bool:
    """Retorna True si Logfire está habilitado globalmente en setup_logging()."""
    return _LOGFIRE_GLOBAL_ENABLED


def get_logfire_instance(tags: Optional[Dict[str, str]] = None):
    """Retorna la instancia de Logfire, con tags si se proporcionan."""
    if tags:
        return logfire.with_tags(*tags.values())
    return logfire
