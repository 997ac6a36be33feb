"""
Vehicle fee tracker CDK stack.

Stack naming convention: <service>-<env>-stack (e.g., vehicle-fees-prod-stack)

The stack holds the single DynamoDB table the data-access layer runs
against, plus outputs so applications can discover its name and ARN.

Usage Example:
    from aws_cdk import App
    from vehicles.vehicle_fees_stack import VehicleFeesStack

    app = App()
    VehicleFeesStack(app, 'vehicle-fees-dev-stack', env_name='dev')
    app.synth()
"""

from typing import Optional

from aws_cdk import (
    Stack,
    CfnOutput,
    Tags,
)
from constructs import Construct

from .table_construct import VehicleFeesTableConstruct


class VehicleFeesStack(Stack):
    """
    Main CDK stack for the vehicle fee tracker.

    Attributes:
        tables: DynamoDB table construct
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        env_name: str = 'dev',
        table_name: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Args:
            scope: CDK app scope
            construct_id: Stack identifier (<service>-<env>-stack)
            env_name: Environment name (dev, staging, prod, etc.)
            table_name: Physical table name (default: generated)
            **kwargs: Additional stack properties (env, description, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name

        Tags.of(self).add('Service', 'vehicle-fees')
        Tags.of(self).add('Environment', env_name)
        Tags.of(self).add('ManagedBy', 'CDK')

        self.tables = VehicleFeesTableConstruct(
            self,
            'Tables',
            table_name=table_name,
        )

        CfnOutput(
            self,
            'TableName',
            value=self.tables.table.table_name,
            description='Vehicle fees DynamoDB table name (TABLE_NAME)',
            export_name=f'{construct_id}-table-name',
        )

        CfnOutput(
            self,
            'TableArn',
            value=self.tables.table.table_arn,
            description='Vehicle fees DynamoDB table ARN',
            export_name=f'{construct_id}-table-arn',
        )
