from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("smartctl-tui")
except PackageNotFoundError:
    # source checkout without installed metadata
    __version__ = "0.0.0+dev"

__all__ = ["__version__"]
