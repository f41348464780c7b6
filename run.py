#!/usr/bin/env python3
"""
Branch Banking Entry Point

Starts the FastAPI server with the branch ledger. Host, port and log
settings come from BANK_* environment variables (see branch_banking.config).
"""

import sys

from branch_banking.api import run_server
from branch_banking.config import get_config
from branch_banking.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)

    print("🏦 Starting Branch Banking...")
    print("💰 All balances use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    if not config.admin_api_key:
        print("⚠️  BANK_ADMIN_API_KEY is not set; admin endpoints are disabled")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Branch Banking...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
