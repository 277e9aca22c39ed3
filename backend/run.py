#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.
For local development only - uses the in-memory payment gateway unless
STRIPE_SECRET_KEY is set.
"""
from pathlib import Path

import uvicorn

backend_dir = Path(__file__).parent

if __name__ == "__main__":
    print("Starting booking core development server...")
    print("Access at: http://localhost:8000")
    print("API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
        app_dir=str(backend_dir),
    )
