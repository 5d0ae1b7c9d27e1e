"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional
import json

from dotenv import load_dotenv

from .file.chunker import CHUNK_SIZE, MAX_CHUNK_SIZE

DEFAULT_SERVER = 'nats://127.0.0.1:4222'


def parse_servers(value: str) -> List[str]:
    """Split a comma-separated server list."""
    return [s.strip() for s in value.split(',') if s.strip()]


@dataclass
class TransferConfig:
    """
    Transfer Configuration.

    Configuration priority (highest to lowest):
    1. Command line options
    2. Environment variables (JSXFER_*)
    3. Config file (JSON)
    4. Default values
    """
    # Connection
    servers: List[str] = field(default_factory=lambda: [DEFAULT_SERVER])
    creds: Optional[Path] = None
    name: str = 'NATS JetStream Transfer'
    reconnect_wait: float = 1.0
    max_reconnects: int = 10

    # Upload
    chunk_size: int = CHUNK_SIZE
    max_pending: int = 8  # 8 * 64KB in flight
    replicas: int = 1

    # Download (seconds)
    first_timeout: float = 5.0
    next_timeout: float = 1.0
    idle_heartbeat: float = 2.0
    output_dir: Path = field(default_factory=lambda: Path('.'))

    # Logging
    log_level: str = 'INFO'

    def validate(self):
        """Raise ValueError on settings a transfer cannot run with."""
        if not self.servers:
            raise ValueError("At least one server URL is required")
        if not 0 < self.chunk_size <= MAX_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be in 1..{MAX_CHUNK_SIZE}")
        if self.max_pending <= 0:
            raise ValueError("max_pending must be positive")
        if self.replicas <= 0:
            raise ValueError("replicas must be positive")
        if self.first_timeout <= 0 or self.next_timeout <= 0:
            raise ValueError("Receive timeouts must be positive")

    @classmethod
    def from_env(cls) -> 'TransferConfig':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Connection
        servers = os.getenv('JSXFER_SERVERS')
        if servers:
            config.servers = parse_servers(servers)
        creds = os.getenv('JSXFER_CREDS')
        if creds:
            config.creds = Path(creds)
        config.reconnect_wait = float(os.getenv('JSXFER_RECONNECT_WAIT', config.reconnect_wait))
        config.max_reconnects = int(os.getenv('JSXFER_MAX_RECONNECTS', config.max_reconnects))

        # Upload
        config.max_pending = int(os.getenv('JSXFER_MAX_PENDING', config.max_pending))
        config.replicas = int(os.getenv('JSXFER_REPLICAS', config.replicas))

        # Download
        output_dir = os.getenv('JSXFER_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)

        # Logging
        config.log_level = os.getenv('JSXFER_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'TransferConfig':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Connection
        servers = data.get('servers')
        if isinstance(servers, str):
            config.servers = parse_servers(servers)
        elif servers:
            config.servers = list(servers)
        if data.get('creds'):
            config.creds = Path(data['creds'])
        config.name = data.get('name', config.name)
        config.reconnect_wait = data.get('reconnect_wait', config.reconnect_wait)
        config.max_reconnects = data.get('max_reconnects', config.max_reconnects)

        # Upload
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.max_pending = data.get('max_pending', config.max_pending)
        config.replicas = data.get('replicas', config.replicas)

        # Download
        config.first_timeout = data.get('first_timeout', config.first_timeout)
        config.next_timeout = data.get('next_timeout', config.next_timeout)
        config.idle_heartbeat = data.get('idle_heartbeat', config.idle_heartbeat)
        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'servers': list(self.servers),
            'creds': str(self.creds) if self.creds else None,
            'name': self.name,
            'reconnect_wait': self.reconnect_wait,
            'max_reconnects': self.max_reconnects,
            'chunk_size': self.chunk_size,
            'max_pending': self.max_pending,
            'replicas': self.replicas,
            'first_timeout': self.first_timeout,
            'next_timeout': self.next_timeout,
            'idle_heartbeat': self.idle_heartbeat,
            'output_dir': str(self.output_dir),
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> TransferConfig:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = TransferConfig()

    # Load from file if provided
    if config_path and config_path.exists():
        config = TransferConfig.from_file(config_path)

    # Override with environment variables
    env_config = TransferConfig.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = TransferConfig()
    for key in ['servers', 'creds', 'reconnect_wait', 'max_reconnects',
                'max_pending', 'replicas', 'output_dir', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config
