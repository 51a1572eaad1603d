"""Application settings entry point."""
from chunkstore.core.config import config_manager

settings = config_manager.settings
