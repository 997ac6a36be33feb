#!/usr/bin/env python3
"""
CDK Application Entry Point.

Usage:
    # Synthesize CloudFormation templates
    cdk synth

    # Deploy to development environment
    cdk deploy vehicle-fees-dev-stack

Environment Configuration:
    - CDK_DEFAULT_ACCOUNT: AWS account ID
    - CDK_DEFAULT_REGION: AWS region
    - VEHICLE_FEES_TABLE_NAME: physical table name (optional; use VehicleDB
      to match the data-access default TABLE_NAME)
"""

import os
from aws_cdk import App, Environment

from vehicles.vehicle_fees_stack import VehicleFeesStack


app = App()

account = os.environ.get('CDK_DEFAULT_ACCOUNT')
region = os.environ.get('CDK_DEFAULT_REGION')

env = None
if account and region:
    env = Environment(account=account, region=region)

dev_stack = VehicleFeesStack(
    app,
    'vehicle-fees-dev-stack',
    env_name='dev',
    table_name=os.environ.get('VEHICLE_FEES_TABLE_NAME') or None,
    env=env,
    description='Vehicle Fee Tracker - Development Environment',
)

app.synth()
