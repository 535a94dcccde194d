"""
Main entry point for the Coin Toss Live Experiment System

This file provides a clean entry point for running the application
from the root directory.
"""

import os

from cointoss.app import create_app
from cointoss.extensions import socketio

app = create_app()

if __name__ == '__main__':
    # Bind to 0.0.0.0 so the container port is reachable from host.
    # One process only: the change feed that drives host dashboards is in-process.
    socketio.run(app, debug=True, host='0.0.0.0', port=int(os.getenv('PORT', '5002')),
                 allow_unsafe_werkzeug=True)
