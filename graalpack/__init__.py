"""GraalVM native-image buildpack for Java functions."""

__version__ = "0.1.0"
