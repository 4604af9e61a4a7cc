"""Infrastructure adapters: logging, metrics, broker messaging and push delivery."""
