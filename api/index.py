"""
Serverless entry point for the AutoCRM API
"""
import os

os.environ.setdefault("ENVIRONMENT", "production")

from mangum import Mangum

from autocrm.main import app

# Lifespan stays on so each cold start builds the service container
handler = Mangum(app, lifespan="auto")
