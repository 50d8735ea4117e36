from .bench_config import BenchConfig, load_bench_config
from .config_manager import ConfigManager, get_config_manager
from .logging_utils import StructuredLogger, get_module_logger

__all__ = [
    'BenchConfig',
    'load_bench_config',
    'ConfigManager',
    'get_config_manager',
    'StructuredLogger',
    'get_module_logger',
]
