"""
src package - Alerts Tracker sources

- alerttracker.domain: records, fingerprints, group rules, config model
- alerttracker.application: sync, push and digest services
- alerttracker.infrastructure: workbooks, history database, mail, lock
- alerttracker.interface: command line
"""
