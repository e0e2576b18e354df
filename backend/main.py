"""
Entry point for running the QUE Accounting API with uvicorn.

    uvicorn main:app --reload
"""

import os

import uvicorn

from que_accounting.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
