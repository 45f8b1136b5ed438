# sqltutor/__init__.py
# Deterministic content indexing and replay-checksum verification for the
# adaptive SQL tutor.
#
#   sqltutor.core          -- dataset index, canonicalizer, row selector, trace logger
#   sqltutor.policy        -- decision policy and progressive hint text
#   sqltutor.ladder        -- HintWise hint-ladder converter
#   sqltutor.verification  -- idempotency verifier, replay harness, checksum gate

__version__ = "1.0.0"
