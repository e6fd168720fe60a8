#!/usr/bin/env python3
"""
Main entry point for the Midway API (development server)
"""

from midway.app import create_app
from midway.config import settings

app = create_app()

if __name__ == '__main__':
    app.run(debug=True, host=settings.HOST, port=settings.PORT)
