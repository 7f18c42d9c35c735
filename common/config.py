#!/usr/bin/env python3

import os
from configparser import ConfigParser
from dataclasses import dataclass


DEFAULT_HEARTBEAT = 600  # 10 minutes


@dataclass
class MiddlewareConfig:
    """Configuration for RabbitMQ middleware"""

    host: str
    port: int
    username: str
    password: str
    heartbeat: int = DEFAULT_HEARTBEAT
    confirm_delivery: bool = False


@dataclass
class ServerConfig:
    """Configuration for the gRPC server"""

    host: str
    port: int
    max_workers: int
    logging_level: str


def _parse_bool(value):
    normalized = str(value).strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"invalid boolean value '{value}'")


def initialize_config(config_path="config.ini"):
    """Parse config file to find program config params

    Function that searches for program configuration parameters in the config.ini file.
    Environment variables take precedence over config file values.
    If at least one of the required config parameters is not found a KeyError exception
    is thrown. If a parameter could not be parsed, a ValueError is thrown.
    If parsing succeeded, the function returns ServerConfig and MiddlewareConfig objects
    """

    config = ConfigParser()

    config_files_read = config.read(config_path)
    if not config_files_read:
        raise KeyError(f"Configuration file '{config_path}' not found or could not be read")

    def _get_required_config(env_key, config_key):
        """Get configuration value from environment variable or config file, raise error if missing"""
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        try:
            return config["DEFAULT"][config_key]
        except KeyError:
            raise KeyError(
                f"Required configuration parameter '{config_key}' not found in environment variable '{env_key}' or config file"
            )

    def _get_optional_config(env_key, config_key, default):
        try:
            return _get_required_config(env_key, config_key)
        except KeyError:
            return default

    try:
        server_config = ServerConfig(
            host=_get_optional_config("SERVER_HOST", "SERVER_HOST", "0.0.0.0"),
            port=int(_get_required_config("SERVER_PORT", "SERVER_PORT")),
            max_workers=int(
                _get_optional_config("SERVER_MAX_WORKERS", "SERVER_MAX_WORKERS", 10)
            ),
            logging_level=_get_required_config("LOGGING_LEVEL", "LOGGING_LEVEL"),
        )

        middleware_config = MiddlewareConfig(
            host=_get_required_config("RABBITMQ_HOST", "RABBITMQ_HOST"),
            port=int(_get_required_config("RABBITMQ_PORT", "RABBITMQ_PORT")),
            username=_get_required_config("RABBITMQ_USER", "RABBITMQ_USER"),
            password=_get_required_config("RABBITMQ_PASSWORD", "RABBITMQ_PASSWORD"),
            heartbeat=int(
                _get_optional_config(
                    "RABBITMQ_HEARTBEAT", "RABBITMQ_HEARTBEAT", DEFAULT_HEARTBEAT
                )
            ),
            confirm_delivery=_parse_bool(
                _get_optional_config(
                    "RABBITMQ_CONFIRM_DELIVERY", "RABBITMQ_CONFIRM_DELIVERY", "false"
                )
            ),
        )

    except KeyError as e:
        raise KeyError("Configuration error: {}. Aborting server".format(e))
    except ValueError as e:
        raise ValueError("Configuration parsing error: {}. Aborting server".format(e))

    return server_config, middleware_config
