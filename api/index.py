"""
Serverless entry point for the TriageDesk API
"""
import os
import sys

# Add parent directory to path
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

# Serverless file systems are read-only apart from /tmp
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:////tmp/tickets.db")
os.environ.setdefault("ROUTING_CONFIG_PATH", os.path.join(parent_dir, "routing_config.yaml"))

from mangum import Mangum
from triagedesk.main import app

# Lifespan stays on: it creates the tables and wires the services
handler = Mangum(app, lifespan="auto")
