"""Audio capture, pitch estimation and chord synthesis."""
