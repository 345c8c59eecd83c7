"""
Command-line client for the Spotify Web API with a JSON-RPC daemon.
"""

APP_NAME = "spotify-cli"
__version__ = "0.4.0"
