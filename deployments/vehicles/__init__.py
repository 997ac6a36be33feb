"""Vehicle fee tracker CDK constructs."""

from .table_construct import VehicleFeesTableConstruct
from .vehicle_fees_stack import VehicleFeesStack

__all__ = [
    "VehicleFeesTableConstruct",
    "VehicleFeesStack",
]
