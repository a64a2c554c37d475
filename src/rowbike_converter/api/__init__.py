"""HTTP API for the remote calibration store."""
