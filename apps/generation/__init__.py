"""
Site generation app.

Drives one intake record through a fixed stage sequence:
optimize assets → synthesize content → resolve palette → render →
persist → provision identity → promote to generated → notify.

Key concepts:
- Dual trigger: an inline Celery task per new record plus a periodic sweep
- Record-level lease (conditional UPDATE) plus a process-level claim guard
- Structured DTOs between stages; only fatal stages abort a pass
- Monitoring signals at every stage boundary
"""
