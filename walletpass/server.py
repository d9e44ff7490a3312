# walletpass/server.py
from __future__ import annotations

import logging

from walletpass.app.factory import createApp

# Basic logging until createApp() installs the configured handlers
logging.basicConfig(level=logging.INFO)

# uvicorn walletpass.server:app
app = createApp()
