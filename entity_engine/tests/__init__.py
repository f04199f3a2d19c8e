"""
Test suite for the entity snapshot engine.

Focus areas:
- Reducer registry dispatch and startup validation
- Fold ordering, cursor handling and read/write consistency
- Provider contracts (memory, file, S3)
- Per-entity write serialization
"""
