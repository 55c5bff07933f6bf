#!/usr/bin/env python3
"""
Script: create_table.py
Description: Create the DynamoDB participants table.

Creates the participants table with its ParticipantIdIndex and
EventIndex global secondary indexes, then waits until it is active.

Usage:
    python scripts/create_table.py
    python scripts/create_table.py --table-name participants-local --endpoint-url http://localhost:8001

This script requires AWS credentials (or a local DynamoDB endpoint).
"""

import argparse
import sys

import boto3
from botocore.exceptions import ClientError

from participants_api.config.settings import settings
from participants_api.storage.dynamodb import create_participants_table
from participants_api.utils.logger import get_logger

logger = get_logger(__name__)


def main():
    """Main script execution."""
    parser = argparse.ArgumentParser(
        description="Create the DynamoDB participants table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/create_table.py
  python scripts/create_table.py --table-name participants-staging
  python scripts/create_table.py --endpoint-url http://localhost:8001
        """
    )

    parser.add_argument(
        '--table-name',
        type=str,
        default=settings.participants_table_name,
        help='Table to create (default: PARTICIPANTS_TABLE_NAME)'
    )

    parser.add_argument(
        '--region',
        type=str,
        default=settings.aws_region,
        help='AWS region (default: AWS_REGION)'
    )

    parser.add_argument(
        '--endpoint-url',
        type=str,
        default=None,
        help='Custom DynamoDB endpoint, e.g. DynamoDB Local'
    )

    args = parser.parse_args()

    dynamodb = boto3.resource('dynamodb', region_name=args.region, endpoint_url=args.endpoint_url)

    try:
        print(f"Creating table {args.table_name}...")
        table = create_participants_table(dynamodb, args.table_name)
        table.wait_until_exists()
        print(f"Table {args.table_name} is active.")
        logger.info("Participants table created", table_name=args.table_name, region=args.region)

    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceInUseException':
            print(f"Table {args.table_name} already exists.")
            return
        print(f"Error: {e.response['Error']['Message']}")
        logger.error(
            "Participants table creation failed",
            table_name=args.table_name,
            error_code=e.response['Error']['Code']
        )
        sys.exit(1)

    except KeyboardInterrupt:
        print("\nCancelled by user.")
        sys.exit(1)


if __name__ == "__main__":
    main()
