# -*- coding: utf-8 -*-
"""
Configuración de solana_watcher
"""
import json, os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse, urlunparse

from logging_system import AppLogger, setup_logging
from .token_watcher import DEFAULT_TOKEN_DECIMALS

_logger = AppLogger(__name__)

CLUSTERS: Dict[str, Dict[str, str]] = {
    "localnet": {
        "rpc_url": "http://127.0.0.1:8899",
        "websocket_url": "ws://127.0.0.1:8900",
    },
    "devnet": {
        "rpc_url": "https://api.devnet.solana.com",
        "websocket_url": "wss://api.devnet.solana.com",
    },
    "testnet": {
        "rpc_url": "https://api.testnet.solana.com",
        "websocket_url": "wss://api.testnet.solana.com",
    },
    "mainnet-beta": {
        "rpc_url": "https://api.mainnet-beta.solana.com",
        "websocket_url": "wss://api.mainnet-beta.solana.com",
    },
}
CLUSTER_ALIASES = {"mainnet": "mainnet-beta"}

COMMITMENTS = ("processed", "confirmed", "finalized")


def get_websocket_url_from_http_url(http_url: str) -> str:
    """Deriva la URL de websocket de una URL RPC HTTP (http -> ws, https -> wss)."""
    parsed = urlparse(http_url)
    if parsed.scheme == "http":
        return urlunparse(parsed._replace(scheme="ws"))
    if parsed.scheme == "https":
        return urlunparse(parsed._replace(scheme="wss"))
    raise ValueError(f"URL must start with http:// or https://: {http_url}")


def _default_logfire_config() -> Dict[str, Any]:
    return {
        'service_name': 'solana_watcher',
        'environment': 'development',
        'tags': {
            'project': 'solana-watcher',
        },
        'min_level': 'WARNING'
    }


@dataclass
class WatcherConfig:
    """Configuración de red, observación y logging"""

    # Red
    cluster: str = "localnet"
    rpc_url: Optional[str] = None          # Si se indica, tiene prioridad sobre cluster
    websocket_url: Optional[str] = None    # Si falta, se deriva de rpc_url

    # Observación
    commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    default_token_decimals: int = DEFAULT_TOKEN_DECIMALS
    use_token_extensions: bool = True      # Programa por defecto en watch_token_balance

    # Transporte
    request_timeout_s: float = 30.0
    websocket_open_timeout_s: float = 30.0
    websocket_ping_interval_s: Optional[float] = 30.0

    # Logging
    logging_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = "INFO"
    log_to_file: bool = False
    log_to_console: bool = True
    log_file_path: str = "logs"
    log_filename: str = "solana_watcher_%Y-%m-%d_%H-%M-%S.log"
    enable_logfire: bool = False
    min_logfire_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = "WARNING"
    logfire_config: Dict[str, Any] = field(default_factory=_default_logfire_config)

    def __post_init__(self):
        setup_logging(
            min_level_to_process=self.logging_level,
            file_output=self.log_to_file,
            console_output=self.log_to_console,
            log_directory=self.log_file_path,
            log_filename=self.log_filename,
            enable_logfire=self.enable_logfire,
            logfire_config=self.logfire_config,
            logfire_min_level=self.min_logfire_level
        )

        self.cluster = CLUSTER_ALIASES.get(self.cluster, self.cluster)

        if self.rpc_url is None:
            if self.cluster not in CLUSTERS:
                error_msg = f"Unsupported cluster name (valid options are {', '.join(CLUSTERS)}): {self.cluster}"
                _logger.error(error_msg)
                raise ValueError(error_msg)
            self.rpc_url = CLUSTERS[self.cluster]["rpc_url"]
            if self.websocket_url is None:
                self.websocket_url = CLUSTERS[self.cluster]["websocket_url"]
        else:
            self.cluster = "custom"

        if self.websocket_url is None:
            self.websocket_url = get_websocket_url_from_http_url(self.rpc_url)

        if self.commitment not in COMMITMENTS:
            error_msg = f"Invalid commitment: {self.commitment}. Must be one of: {', '.join(COMMITMENTS)}"
            _logger.error(error_msg)
            raise ValueError(error_msg)

        if self.default_token_decimals < 0:
            error_msg = f"default_token_decimals must be >= 0, not {self.default_token_decimals}"
            _logger.error(error_msg)
            raise ValueError(error_msg)

        _logger.debug(f"Configuración inicializada - RPC: {self.rpc_url}, WS: {self.websocket_url}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cluster': self.cluster,
            'rpc_url': self.rpc_url,
            'websocket_url': self.websocket_url,
            'commitment': self.commitment,
            'default_token_decimals': self.default_token_decimals,
            'use_token_extensions': self.use_token_extensions,
            'request_timeout_s': self.request_timeout_s,
            'websocket_open_timeout_s': self.websocket_open_timeout_s,
            'websocket_ping_interval_s': self.websocket_ping_interval_s,
            'logging_level': self.logging_level,
            'log_to_file': self.log_to_file,
            'log_to_console': self.log_to_console,
            'log_file_path': self.log_file_path,
            'log_filename': self.log_filename,
            'enable_logfire': self.enable_logfire,
            'min_logfire_level': self.min_logfire_level,
            'logfire_config': {k: v for k, v in self.logfire_config.items() if k != 'token'},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatcherConfig':
        """Crea configuración desde diccionario"""
        cluster = data.get('cluster', 'localnet')
        rpc_url = data.get('rpc_url')
        if cluster != 'custom' and rpc_url == CLUSTERS.get(CLUSTER_ALIASES.get(cluster, cluster), {}).get('rpc_url'):
            # Guardado desde un cluster conocido: reconstruir desde el nombre
            rpc_url = None

        return cls(
            cluster=cluster if cluster != 'custom' else 'localnet',
            rpc_url=rpc_url,
            websocket_url=data.get('websocket_url'),
            commitment=data.get('commitment', 'confirmed'),
            default_token_decimals=data.get('default_token_decimals', DEFAULT_TOKEN_DECIMALS),
            use_token_extensions=data.get('use_token_extensions', True),
            request_timeout_s=data.get('request_timeout_s', 30.0),
            websocket_open_timeout_s=data.get('websocket_open_timeout_s', 30.0),
            websocket_ping_interval_s=data.get('websocket_ping_interval_s', 30.0),
            logging_level=data.get('logging_level', 'INFO'),
            log_to_file=data.get('log_to_file', False),
            log_to_console=data.get('log_to_console', True),
            log_file_path=data.get('log_file_path', 'logs'),
            log_filename=data.get('log_filename', 'solana_watcher_%Y-%m-%d_%H-%M-%S.log'),
            enable_logfire=data.get('enable_logfire', False),
            min_logfire_level=data.get('min_logfire_level', 'WARNING'),
            logfire_config=data.get('logfire_config') or _default_logfire_config(),
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> 'WatcherConfig':
        """
        Crea configuración a partir de variables de entorno:
        SOLANA_CLUSTER, SOLANA_RPC_URL, SOLANA_WS_URL, SOLANA_WATCHER_LOG_LEVEL.
        """
        data: Dict[str, Any] = {}
        env_map = {
            'SOLANA_CLUSTER': 'cluster',
            'SOLANA_RPC_URL': 'rpc_url',
            'SOLANA_WS_URL': 'websocket_url',
            'SOLANA_WATCHER_LOG_LEVEL': 'logging_level',
        }
        for env_name, key in env_map.items():
            value = os.environ.get(env_name)
            if value:
                data[key] = value.upper() if key == 'logging_level' else value
        data.update(overrides)
        return cls.from_dict(data)

    def save_to_file(self, filepath: str = "config.json"):
        """Guarda la configuración en archivo"""
        try:
            Path(filepath).parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            _logger.info(f"Configuración guardada en: {filepath}")
        except OSError as e:
            _logger.error(f"Error al guardar configuración en {filepath}: {e}")
            raise

    @classmethod
    def load_from_file(cls, filepath: str = "config.json") -> 'WatcherConfig':
        """Carga configuración desde archivo; si no existe, devuelve la configuración por defecto"""
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            _logger.warning(f"Archivo de configuración no encontrado: {filepath}")
            return cls()
        except (OSError, json.JSONDecodeError) as e:
            _logger.error(f"Error al cargar configuración desde {filepath}: {e}")
            raise
        _logger.info(f"Configuración cargada desde: {filepath}")
        return cls.from_dict(data)
