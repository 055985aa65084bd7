"""
Configuration Management System

Handles settings for Notetaker including:
- JSON configuration files
- Environment variables and .env files
- Configuration validation
- Default settings
"""

import os
import json
import logging
from typing import Dict, Any, Optional, List
from pathlib import Path
from dataclasses import dataclass, asdict, field

from dotenv import load_dotenv

from .pipeline import PipelineConfig
from .reassembler import DEFAULT_LINE_BREAK_THRESHOLD, DEFAULT_WORD_GAP_THRESHOLD

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ExtractionConfig:
    """Geometry thresholds for text reassembly."""
    line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD
    word_gap_threshold: float = DEFAULT_WORD_GAP_THRESHOLD


@dataclass
class NotesConfig:
    """Settings for notes assembly."""
    title_prefix: str = "Full Content: "
    summary_page_count: int = 3
    summary_char_limit: int = 500
    max_key_points: int = 15
    max_tags: int = 8


@dataclass
class SessionConfig:
    """Settings for the processing session."""
    max_file_size_mb: int = 50
    allowed_content_types: List[str] = field(default_factory=lambda: ["application/pdf"])
    max_workers: int = 4

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * MEGABYTE


@dataclass
class PathConfig:
    """Configuration for output and logging paths."""
    output_dir: str = "./notes"
    log_file: Optional[str] = None
    log_level: str = "INFO"


@dataclass
class NotetakerConfig:
    """Complete configuration for Notetaker."""
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    paths: PathConfig = field(default_factory=PathConfig)
    debug: bool = False

    def pipeline_config(self) -> PipelineConfig:
        """Flatten the settings the pipeline needs."""
        return PipelineConfig(
            line_break_threshold=self.extraction.line_break_threshold,
            word_gap_threshold=self.extraction.word_gap_threshold,
            title_prefix=self.notes.title_prefix,
            summary_page_count=self.notes.summary_page_count,
            summary_char_limit=self.notes.summary_char_limit,
            max_key_points=self.notes.max_key_points,
            max_tags=self.notes.max_tags
        )


class ConfigManager:
    """Manages configuration loading, validation, and saving."""

    def __init__(self, config_path: Optional[str] = None, env_file: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file
            env_file: Path to the .env file
        """
        self.config_path = Path(config_path) if config_path else Path("notetaker.json")
        self.env_file = Path(env_file)
        self.config: Optional[NotetakerConfig] = None

        self._load_env_vars()

    def _load_env_vars(self):
        """Load environment variables from .env file."""
        if self.env_file.exists():
            load_dotenv(self.env_file)
            logger.info(f"Loaded environment variables from {self.env_file}")

    def load_config(self) -> NotetakerConfig:
        """Load configuration from file and environment."""
        if self.config_path.exists():
            logger.info(f"Loading configuration from {self.config_path}")
            config = self._load_from_file()
        else:
            logger.info("Creating default configuration")
            config = NotetakerConfig()

        config = self._apply_env_overrides(config)

        self._validate_config(config)

        self.config = config
        return config

    def _load_from_file(self) -> NotetakerConfig:
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            logger.info("Using default configuration")
            return NotetakerConfig()

        return self._dict_to_config(data)

    def _dict_to_config(self, data: Dict[str, Any]) -> NotetakerConfig:
        """Convert dictionary to configuration object."""
        extraction_data = data.get('extraction', {})
        notes_data = data.get('notes', {})
        session_data = data.get('session', {})
        paths_data = data.get('paths', {})

        return NotetakerConfig(
            extraction=ExtractionConfig(**extraction_data) if extraction_data else ExtractionConfig(),
            notes=NotesConfig(**notes_data) if notes_data else NotesConfig(),
            session=SessionConfig(**session_data) if session_data else SessionConfig(),
            paths=PathConfig(**paths_data) if paths_data else PathConfig(),
            debug=data.get('debug', False)
        )

    def _apply_env_overrides(self, config: NotetakerConfig) -> NotetakerConfig:
        """Apply environment variable overrides."""
        if os.getenv('NOTETAKER_OUTPUT_DIR'):
            config.paths.output_dir = os.getenv('NOTETAKER_OUTPUT_DIR')

        if os.getenv('NOTETAKER_LOG_LEVEL'):
            config.paths.log_level = os.getenv('NOTETAKER_LOG_LEVEL').upper()

        if os.getenv('NOTETAKER_LOG_FILE'):
            config.paths.log_file = os.getenv('NOTETAKER_LOG_FILE')

        if os.getenv('NOTETAKER_MAX_FILE_SIZE_MB'):
            config.session.max_file_size_mb = int(os.getenv('NOTETAKER_MAX_FILE_SIZE_MB'))

        if os.getenv('NOTETAKER_MAX_WORKERS'):
            config.session.max_workers = int(os.getenv('NOTETAKER_MAX_WORKERS'))

        if os.getenv('NOTETAKER_DEBUG'):
            config.debug = os.getenv('NOTETAKER_DEBUG').lower() == 'true'

        return config

    def _validate_config(self, config: NotetakerConfig):
        """Validate configuration settings."""
        errors = []

        if config.extraction.line_break_threshold < 0:
            errors.append("line_break_threshold must not be negative")

        if config.extraction.word_gap_threshold < 0:
            errors.append("word_gap_threshold must not be negative")

        if config.notes.max_key_points <= 0:
            errors.append("max_key_points must be positive")

        if config.notes.max_tags <= 0:
            errors.append("max_tags must be positive")

        if config.notes.summary_char_limit <= 0:
            errors.append("summary_char_limit must be positive")

        if config.session.max_file_size_mb <= 0:
            errors.append("max_file_size_mb must be positive")

        if config.session.max_workers <= 0:
            errors.append("max_workers must be positive")

        if config.paths.log_level.upper() not in LOG_LEVELS:
            errors.append(f"Unknown log level: {config.paths.log_level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.info("Configuration validation passed")

    def save_config(self, config: Optional[NotetakerConfig] = None):
        """Save configuration to file."""
        if config is None:
            config = self.config

        if config is None:
            raise ValueError("No configuration to save")

        with open(self.config_path, 'w') as f:
            json.dump(asdict(config), f, indent=2)

        logger.info(f"Configuration saved to {self.config_path}")

    def create_sample_config(self, output_path: Optional[str] = None):
        """Create a sample configuration file."""
        if output_path is None:
            output_path = "notetaker.sample.json"

        with open(output_path, 'w') as f:
            json.dump(asdict(NotetakerConfig()), f, indent=2)

        logger.info(f"Sample configuration created at {output_path}")

    def create_env_template(self, output_path: Optional[str] = None):
        """Create a .env template file."""
        if output_path is None:
            output_path = ".env.template"

        template = """# Notetaker Environment Variables

# Paths
NOTETAKER_OUTPUT_DIR=./notes
NOTETAKER_LOG_FILE=

# Processing
NOTETAKER_MAX_FILE_SIZE_MB=50
NOTETAKER_MAX_WORKERS=4

# Settings
NOTETAKER_LOG_LEVEL=INFO
NOTETAKER_DEBUG=false
"""

        with open(output_path, 'w') as f:
            f.write(template)

        logger.info(f"Environment template created at {output_path}")


def get_config(config_path: Optional[str] = None) -> NotetakerConfig:
    """
    Get the configuration instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration
    """
    manager = ConfigManager(config_path)
    return manager.load_config()
