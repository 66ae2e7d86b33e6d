"""
Configuration loading for ModWarden.

- **app_configuration.py**: Reads ``config/app_config.yml`` and exposes typed
  accessors with defaults for every setting.
"""
