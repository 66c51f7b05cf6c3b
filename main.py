#!/usr/bin/env python3
"""
Main entry point
Runs the admin API that receives purchase notifications and config saves
"""

import os

import uvicorn
from loguru import logger

from dashboard import app
from utils.log import setup_logging


def run_dashboard():
    """Run FastAPI admin API"""
    port = int(os.getenv("PORT", 8000))
    logger.info(f"Starting admin API on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    setup_logging()
    logger.info("=" * 80)
    logger.info("Starting Stripe Payment Links Mailchimp Sync")
    logger.info("=" * 80)

    run_dashboard()
