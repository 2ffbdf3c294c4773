"""sitemirror: resumable one-way mirror of remote document sites"""

__version__ = "0.1.0"
