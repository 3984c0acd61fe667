"""
System components for exprmath.

This module provides configuration handling for the analysis pipeline.
"""

from exprmath.components.config import Config, ConfigManager, load_config_file
