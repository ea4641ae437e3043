"""
Metrics Service package for the OTA Access Layer.

Ingests usage events reported by devices and the download path, and reads
usage back per app and period. It provides:

- app.main: API surface for usage writes, reads and health.
- app.usage: Event models, the usage recorder and the usage reader.

Usage events are write-once; device rows are upserted, last write wins.
"""
