"""
Entry point for running replybot as a module: python -m replybot
"""

from replybot.cli.commands import app

if __name__ == "__main__":
    app()
