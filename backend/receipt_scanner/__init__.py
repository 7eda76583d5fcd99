"""Receipt Scanner backend.

Serverless-style HTTP handlers that extract structured data from receipt
photos and persist the results in MongoDB behind Firebase authentication.
"""

__version__ = "1.0.0"
