"""intake_server — FastAPI REST API for the intake engine.

Exposes the IntakePipeline as a stateless HTTP API: intake metadata,
session management, step-by-step answering, completion synthesis, and
contact capture.
"""
