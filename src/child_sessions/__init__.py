"""child-sessions: record-keeping backend for child therapy sessions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("child-sessions")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0-dev"
