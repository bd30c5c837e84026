from eventwatch.sources.base import BaseSource, SourceError
from eventwatch.sources.gdelt import GDELTSource
from eventwatch.sources.rss import RSSSource
from eventwatch.sources.usgs import USGSSource

__all__ = ["BaseSource", "SourceError", "GDELTSource", "RSSSource", "USGSSource"]
