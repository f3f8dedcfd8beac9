"""
Detector Loader Module - Load the user's error-detector rule document

Looks for errorDetector.json in the user config directory (~/.kfctl).
A missing file selects the default keyword detector; an invalid file is
logged and also falls back to the default detector.
"""
import json
import logging
from pathlib import Path
from typing import Tuple

from pydantic import ValidationError

from KFC.errors import DetectorConfigError

from .detector import ErrorDetector, default_error_detector
from .rules import DEFAULT_ASPNET_CONFIG, ErrorDetectorConfig, create_detector_from_config

logger = logging.getLogger(__name__)

ERROR_DETECTOR_FILE = "errorDetector.json"


def get_error_detector_path(config_dir: Path) -> Path:
    return Path(config_dir) / ERROR_DETECTOR_FILE


def has_custom_error_detector(config_dir: Path) -> bool:
    return get_error_detector_path(config_dir).exists()


def read_detector_config(path: Path) -> ErrorDetectorConfig:
    """
    Parse and validate a rule document

    Raises:
        DetectorConfigError: if the file is unreadable, not JSON, or fails validation
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DetectorConfigError(f"Cannot read {path}: {e}") from e

    try:
        return ErrorDetectorConfig.model_validate(document)
    except ValidationError as e:
        raise DetectorConfigError(f"Invalid rule document {path}: {e}") from e


def load_error_detector(config_dir: Path) -> ErrorDetector:
    """Detector from ~/.kfctl/errorDetector.json, or the default detector"""
    path = get_error_detector_path(config_dir)
    if not path.exists():
        return default_error_detector

    try:
        config = read_detector_config(path)
    except DetectorConfigError as e:
        logger.error(f"{e}; using the default error detector")
        return default_error_detector

    logger.info(f"Loaded error detector rules from {path} "
                f"({len(config.skip)} skip, {len(config.rules)} rules, {len(config.exclude)} exclude)")
    return create_detector_from_config(config)


def init_error_detector(config_dir: Path) -> Tuple[bool, str, Path]:
    """
    Write the default rule document for the user to edit

    Returns:
        Tuple of (success, message, path)
    """
    path = get_error_detector_path(config_dir)

    if path.exists():
        return False, f"Error detector file already exists.\nEdit {path} to customize error detection.", path

    template = {
        "description": "Custom error detector configuration for KFC",
        "comment": "Edit this file to customize error detection for your application",
        **DEFAULT_ASPNET_CONFIG.model_dump(by_alias=True, exclude_none=True),
    }

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(template, f, indent=2)
    except OSError as e:
        return False, f"Failed to create error detector file: {e}", path

    return True, f"Error detector configuration created at:\n{path}\n\nEdit this JSON file to customize error detection.", path
