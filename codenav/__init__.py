"""codenav: cross-file call graph and keyword navigation over extracted code facts."""

__version__ = "0.3.0"
