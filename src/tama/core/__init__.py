"""
Session state machine and streaming pipeline, independent of the UI.
"""
