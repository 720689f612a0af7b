from .channels import BYPASS_TYPE, fan_out_graph, two_mappers_and_bypass
from .local_engine import LocalEngine, read_dir, read_records

__all__ = [
    "BYPASS_TYPE",
    "LocalEngine",
    "fan_out_graph",
    "read_dir",
    "read_records",
    "two_mappers_and_bypass",
]
