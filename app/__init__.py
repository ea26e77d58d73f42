"""Cinefeed: trending, most-reviewed and personalised feeds over TMDB."""

__version__ = "1.0.0"
