"""
bridgebot - relays chat and presence between a Minecraft Bedrock server and
a Discord channel.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("bridgebot")
except PackageNotFoundError:
    __version__ = "1.0.0"
