"""
Reflection trend analysis.

Derives period KPIs from the reflection event log:
- Counts, consistency and word volume
- Mood trend (with distinct no-data and insufficient-data states)
- Reflection frequency and its period-over-period trend

All logic is deterministic and read-only.
"""
