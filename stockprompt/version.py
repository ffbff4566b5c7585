__version__ = "0.1.0"

# Bump when the AppConfig JSON layout changes; migrate_config upgrades older files.
CONFIG_SCHEMA_VERSION = 1
