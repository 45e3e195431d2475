"""
cctracker - C&C Thread Status Tracker for Discord

cctracker watches the C&C (content review) sections of a community forum and
posts progress alerts to Discord channels that subscribed to a tier/generation.

Core Components:

- **Forum Snapshot Reader**: Fetches the full set of open threads in the
  monitored forum sections every poll
- **Stage Classifier**: Infers the review stage (WIP, QC, GP, HTML, Done) and
  progress counter from thread prefixes and titles
- **Status Cache**: SQLite-backed last-known stage/progress per thread plus the
  channel subscription table
- **Reconciliation Engine**: Diffs each snapshot against the cache, alerts
  subscribers once per transition, and evicts threads that left the forum

Usage:
    from cctracker.main import main
    main()  # Starts the bot and the polling loop
"""
