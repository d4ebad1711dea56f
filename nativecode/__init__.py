"""Table lookup helper answering single-byte reads from large files."""
