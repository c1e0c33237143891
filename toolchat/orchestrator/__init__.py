"""Turn engine: drives the streamed tool-calling loop."""
