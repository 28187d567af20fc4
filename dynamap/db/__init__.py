"""DynamoDB access for dynamap.

This package centralizes:
- the `StoreClient` interface and its boto3 implementation
- retry/backoff policy and typed errors
- consumed-capacity accounting
- grouped BatchWriteItem execution and single-item reads
"""
