"""Engine constants shared across the SDK.

Several constants can be overridden via environment variables so that
deployments can adjust models and timeouts without code changes.
"""

import os

# Intake served when a client does not name one.
# Overridable via DEFAULT_INTAKE_TYPE env var.
DEFAULT_INTAKE_TYPE = os.getenv("DEFAULT_INTAKE_TYPE", "therapy_readiness")

# Upper bound on a single generative call, in seconds.  A call that runs
# longer surfaces as GenerationError and nothing is recorded.
# Overridable via GENERATION_TIMEOUT_SECONDS env var.
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))

# Small, fast model for 1-3 sentence reflections; larger model for the
# one-off completion synthesis.
REFLECTION_MODEL = os.getenv("REFLECTION_MODEL", "claude-3-5-haiku-latest")
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "claude-sonnet-4-5")

# Output token ceiling per generation.
GENERATION_MAX_TOKENS = int(os.getenv("GENERATION_MAX_TOKENS", "4096"))

# Shown in the reflection prompt before the first answer.
NO_PRIOR_CONTEXT = "This is the first question - no prior context."

# Separator between answers in the completion prompt.
TRANSCRIPT_SEPARATOR = "\n\n---\n\n"
