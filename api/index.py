"""
Serverless entry point for the Minion API
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("CATALOG_REFRESH_INTERVAL", "0")  # No background jobs in serverless

from mangum import Mangum
from minion.main import app

# Lambda handler for ASGI app; lifespan builds the Analyzer on cold start
handler = Mangum(app, lifespan="auto")
