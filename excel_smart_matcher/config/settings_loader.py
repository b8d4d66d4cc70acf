"""
Matching settings and settings file loader for the smart matcher.

excel_smart_matcher/config/settings_loader.py

Every weight, threshold and sample size the engine uses lives in one
MatchSettings object so callers can tune them without touching the
algorithms. Settings can be built from a dict or loaded from a YAML/JSON
file with friendly error reporting.
"""

import json
import yaml
import logging

from pathlib import Path
from typing import Any, Optional
from dataclasses import dataclass, field, fields, asdict, replace


logger = logging.getLogger(__name__)

settings_section = 'matching'


class SettingsValidationError(Exception):
    """Raised when matching settings have invalid structure or values."""
    pass


# Header words that mark a column as a likely join key.
DEFAULT_HEADER_KEY_WORDS = (
    'id', 'no', 'code', 'number', 'key', 'sku', 'uid',
    '编号', '序号', '工号', '学号', '代码', '编码', '单号', '身份证号', '手机号',
)

# Keywords that earn a header bonus when they appear in a header.
DEFAULT_HEADER_BONUS_KEYWORDS = ('id', 'no', 'code', 'number', '编号', '号', '代码', '编码')


@dataclass(frozen=True)
class MatchSettings:
    """
    Tunable constants for key detection, source scanning and joining.

    The weight defaults carry no derivation of their own; treat them as
    design defaults. Weight groups must each sum to 1.0.
    """

    # Key column detection
    uniqueness_weight: float = 0.4
    completeness_weight: float = 0.3
    type_homogeneity_weight: float = 0.2
    pattern_weight: float = 0.1
    header_exact_bonus: float = 0.15
    header_partial_bonus: float = 0.10
    min_key_uniqueness: float = 0.3
    min_key_score: float = 0.3

    # Column similarity
    name_weight: float = 0.3
    type_weight: float = 0.3
    value_overlap_weight: float = 0.4
    name_containment_score: float = 0.8
    type_sample_rows: int = 200
    target_value_sample: int = 50
    candidate_value_sample: int = 500

    # Source scanning
    column_match_floor: float = 0.2
    table_match_floor: float = 0.3
    ambiguity_margin: float = 0.05
    scan_workers: int = 4

    # Joining
    join_chunk_size: int = 1000
    cancel_check_interval: int = 100
    max_workers: Optional[int] = None
    low_match_rate_warning: float = 0.5
    write_headers: bool = True

    header_key_words: tuple = field(default=DEFAULT_HEADER_KEY_WORDS)
    header_bonus_keywords: tuple = field(default=DEFAULT_HEADER_BONUS_KEYWORDS)

    def __post_init__(self):
        errors = self.validate()
        if errors:
            raise SettingsValidationError(
                "Invalid matching settings:\n" + "\n".join(f"  • {error}" for error in errors)
            )

    def validate(self) -> list:
        """
        Check value ranges and weight sums.

        Returns:
            List of error messages (empty when valid)
        """
        errors = []

        weight_groups = {
            'key detection': (self.uniqueness_weight, self.completeness_weight,
                              self.type_homogeneity_weight, self.pattern_weight),
            'column similarity': (self.name_weight, self.type_weight, self.value_overlap_weight),
        }
        for group_name, weights in weight_groups.items():
            if any(w < 0 for w in weights):
                errors.append(f"{group_name} weights must not be negative")
            elif abs(sum(weights) - 1.0) > 1e-6:
                errors.append(f"{group_name} weights must sum to 1.0, got {sum(weights):.4f}")

        ratio_fields = [
            'header_exact_bonus', 'header_partial_bonus', 'min_key_uniqueness', 'min_key_score',
            'name_containment_score', 'column_match_floor', 'table_match_floor',
            'ambiguity_margin', 'low_match_rate_warning',
        ]
        for name in ratio_fields:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or not 0.0 <= value <= 1.0:
                errors.append(f"'{name}' must be a number between 0 and 1, got {value!r}")

        count_fields = [
            'type_sample_rows', 'target_value_sample', 'candidate_value_sample',
            'scan_workers', 'join_chunk_size', 'cancel_check_interval',
        ]
        for name in count_fields:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(f"'{name}' must be a positive integer, got {value!r}")

        if self.max_workers is not None:
            if not isinstance(self.max_workers, int) or isinstance(self.max_workers, bool) or self.max_workers < 1:
                errors.append(f"'max_workers' must be a positive integer or null, got {self.max_workers!r}")

        for name in ('header_key_words', 'header_bonus_keywords'):
            words = getattr(self, name)
            if not all(isinstance(word, str) and word.strip() for word in words):
                errors.append(f"'{name}' must contain non-empty strings only")

        return errors

    @classmethod
    def from_dict(cls, config: dict) -> 'MatchSettings':
        """
        Build settings from a plain dict, starting from the defaults.

        Args:
            config: Mapping of setting names to values

        Returns:
            MatchSettings instance

        Raises:
            SettingsValidationError: If keys are unknown or values invalid
        """
        # Guard clause: config must be a dictionary
        if not isinstance(config, dict):
            raise SettingsValidationError("Matching settings must be a dictionary")

        known = {f.name for f in fields(cls)}
        unknown = sorted(key for key in config if key not in known)
        if unknown:
            raise SettingsValidationError(
                f"Unknown matching settings: {unknown}. Valid settings: {sorted(known)}"
            )

        values = dict(config)
        for name in ('header_key_words', 'header_bonus_keywords'):
            if name in values:
                if not isinstance(values[name], (list, tuple)):
                    raise SettingsValidationError(f"'{name}' must be a list of strings")
                values[name] = tuple(str(word).strip().lower() for word in values[name])

        return cls(**values)

    def with_overrides(self, **overrides) -> 'MatchSettings':
        """Return a copy with some settings replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> dict:
        """Plain dict view, suitable for dumping back to YAML."""
        data = asdict(self)
        data['header_key_words'] = list(self.header_key_words)
        data['header_bonus_keywords'] = list(self.header_bonus_keywords)
        return data


DEFAULT_SETTINGS = MatchSettings()


class SettingsLoader:
    """
    Loads matching settings from YAML or JSON files.

    The file may hold the settings at top level or under a 'matching:'
    section, so the matcher settings can share a file with other config.
    """

    def __init__(self):
        """Initialize the settings loader."""
        self.settings_path = None
        self.raw_data = None

    def load_settings_file(self, settings_path) -> MatchSettings:
        """
        Load a settings file from disk with validation.

        Args:
            settings_path: Path to the settings file (.yaml, .yml, or .json)

        Returns:
            Validated MatchSettings

        Raises:
            SettingsValidationError: If the file format or content is invalid
        """
        # Guard clause: ensure we have a valid path
        if not settings_path:
            raise SettingsValidationError("Settings path cannot be empty")

        self.settings_path = Path(settings_path)

        if not self.settings_path.exists():
            raise SettingsValidationError(f"Settings file not found: {self.settings_path}")

        logger.info(f"Loading matching settings from: {self.settings_path}")

        suffix = self.settings_path.suffix.lower()
        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                if suffix in ['.yaml', '.yml']:
                    self.raw_data = yaml.safe_load(f)
                elif suffix == '.json':
                    self.raw_data = json.load(f)
                else:
                    raise SettingsValidationError(
                        f"Unsupported file format: {self.settings_path.suffix}. "
                        f"Supported formats: .yaml, .yml, .json"
                    )
        except yaml.YAMLError as e:
            raise SettingsValidationError(f"YAML syntax error in {self.settings_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SettingsValidationError(f"JSON syntax error in {self.settings_path}: {e}") from e
        except OSError as e:
            raise SettingsValidationError(f"Error reading settings file: {e}") from e

        # Empty file means defaults
        if self.raw_data is None:
            logger.warning(f"⚠️  Settings file {self.settings_path} is empty, using defaults")
            return DEFAULT_SETTINGS

        return self.load_settings_dict(self.raw_data)

    def load_settings_dict(self, data: Any) -> MatchSettings:
        """
        Build settings from already-parsed data.

        Args:
            data: Parsed YAML/JSON content

        Returns:
            Validated MatchSettings
        """
        if not isinstance(data, dict):
            raise SettingsValidationError("Settings file must contain a mapping at top level")

        if settings_section in data:
            data = data[settings_section] or {}

        settings = MatchSettings.from_dict(data)
        logger.debug(f"Loaded {len(data)} matching setting overrides")
        return settings


def load_match_settings(settings_path=None) -> MatchSettings:
    """Convenience wrapper: defaults when no path is given, otherwise load the file."""
    if settings_path is None:
        return DEFAULT_SETTINGS
    return SettingsLoader().load_settings_file(settings_path)


# End of file #
