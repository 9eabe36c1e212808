"""Theme cascade, data normalization and validation helpers."""
from .data_processor import DataProcessor
from .theme_manager import ThemeManager, adjust_color
from .validators import validate, validate_options

__all__ = ['DataProcessor', 'ThemeManager', 'adjust_color', 'validate', 'validate_options']
