"""
C&C status tracking.

- **forum_sections.py**: Static tables of monitored forum sections, prefix
  vocabularies and generation aliases.
- **stage_classifier.py**: Pure, rule-ordered inference of stage/progress/
  generations/tiers from a thread snapshot.
- **forum_reader.py**: Snapshot reader protocol and the XenForo REST reader.
- **status_cache.py**: Persisted thread status and subscription lookup.
- **notifier.py**: Alert message rules and Discord delivery.
- **reconciliation.py**: The polling reconciliation cycle.
"""
