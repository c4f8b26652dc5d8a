"""Clone a hosted site's dev/test/live pipeline into a new site."""

__version__ = "0.1.1"

# Newest terminus release the platform adapter has been exercised against.
COMPATIBLE_TERMINUS_VERSION = "3.x"
