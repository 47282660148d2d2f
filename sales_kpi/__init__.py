# sales_kpi/__init__.py
"""
Sales KPI Package

Contains:
- config: Configuration management (.env + environment)
- logging_config: Root logger setup (text / JSON)
- kpi_engine: Sales performance aggregation and forecasting

Usage:
    from sales_kpi import config, configure_logging
    from sales_kpi.kpi_engine import SalesKPIMetrics
"""

# Configuration
from .config import (
    config,
    Config,
    KPIConfig,
)

# Logging
from .logging_config import configure_logging

__all__ = [
    'config',
    'Config',
    'KPIConfig',
    'configure_logging',
]

__version__ = '1.0.0'
