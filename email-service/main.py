#!/usr/bin/env python3
"""
Main entry point for the Email Service.
"""

import os
import sys
from pathlib import Path

# Service modules live in src/, shared helpers at the repository root
service_dir = Path(__file__).parent
sys.path.insert(0, str(service_dir / 'src'))
sys.path.insert(0, str(service_dir.parent))

from email_service import main

if __name__ == '__main__':
    # Set environment variables for development if not already set
    if not os.getenv('KAFKA_BOOTSTRAP_SERVERS'):
        os.environ['KAFKA_BOOTSTRAP_SERVERS'] = 'localhost:9092'

    if not os.getenv('LOG_FORMAT'):
        os.environ['LOG_FORMAT'] = 'text'

    # Start the service
    sys.exit(main())
