"""
Vercel entry point for the Support Desk API
"""
import os

# Serverless defaults; real values come from the project environment
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

from mangum import Mangum

from supportdesk.main import app

# Lifespan runs on cold start to open the database and build the classifier
handler = Mangum(app, lifespan="auto")
