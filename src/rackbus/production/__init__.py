"""
rackbus Production Module

Ambient services shared by the backplane and the MIDI input:
- Centralized error reporting for isolated subscriber failures
- Console and rotating-file logging
"""

from .error_handler import (
    ErrorContext,
    ErrorSeverity,
    ProductionErrorHandler,
    get_default_error_handler,
)
from .logging import ProductionFormatter, ProductionLogger, setup_production_logging

__all__ = [
    'ErrorContext',
    'ErrorSeverity',
    'ProductionErrorHandler',
    'get_default_error_handler',
    'ProductionFormatter',
    'ProductionLogger',
    'setup_production_logging',
]
