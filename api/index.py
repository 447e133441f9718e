"""
Vercel entry point for the FAQ Chat Widget API.

Adapts the FastAPI application to serverless functions using Mangum as the
ASGI adapter.
"""

import os
import sys
from pathlib import Path

# Add project root to path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

os.environ.setdefault("DEBUG", "False")

from app import app as application
from mangum import Mangum

# lifespan='off' keeps startup validation errors from crashing the function
handler = Mangum(application, lifespan="off")

__all__ = ["handler", "application"]
