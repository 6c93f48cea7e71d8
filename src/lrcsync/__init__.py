"""lrcsync - attach synced lyrics from NetEase Cloud Music to local audio files."""

__version__ = "1.0.0"
