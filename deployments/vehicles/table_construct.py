"""
DynamoDB table construct for the vehicle fee tracker.

A single table holds every entity (users, sessions, vehicles, search entries,
fee history). Key and index attribute names come from ``vehicle_fees.keys``
so the deployed table and the data-access code cannot drift apart.

Architecture:
- Single-table design keyed by PK/SK
- GSI1..GSI7 for session lookup, vehicle listing, history and the four
  fee-type due-date indexes, all projecting every attribute
- LSI1 for plate search by the last four characters
- TTL on ``ttl`` reclaims expired sessions
- On-demand billing, point-in-time recovery, retained on stack deletion
"""

from typing import Optional

from aws_cdk import (
    aws_dynamodb as dynamodb,
    RemovalPolicy,
)
from constructs import Construct

from vehicle_fees import keys


def _string(name: str) -> dynamodb.Attribute:
    return dynamodb.Attribute(name=name, type=dynamodb.AttributeType.STRING)


class VehicleFeesTableConstruct(Construct):
    """
    Construct that creates the vehicle fee DynamoDB table.

    Attributes:
        table: The single DynamoDB table
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        table_name: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Args:
            scope: Parent construct
            construct_id: Construct identifier
            table_name: Physical table name; auto-generated with the stack
                prefix when omitted
        """
        super().__init__(scope, construct_id, **kwargs)

        self.table = dynamodb.Table(
            self,
            "VehicleFeesTable",
            table_name=table_name,
            partition_key=_string(keys.PK),
            sort_key=_string(keys.SK),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            # Sessions expire through the TTL sweeper
            time_to_live_attribute=keys.TTL_ATTRIBUTE,
            point_in_time_recovery=True,
            removal_policy=RemovalPolicy.RETAIN,
        )

        for index_name, (partition_key, sort_key) in keys.GLOBAL_INDEXES.items():
            self.table.add_global_secondary_index(
                index_name=index_name,
                partition_key=_string(partition_key),
                sort_key=_string(sort_key),
                projection_type=dynamodb.ProjectionType.ALL,
            )

        for index_name, (_, sort_key) in keys.LOCAL_INDEXES.items():
            self.table.add_local_secondary_index(
                index_name=index_name,
                sort_key=_string(sort_key),
                projection_type=dynamodb.ProjectionType.ALL,
            )
