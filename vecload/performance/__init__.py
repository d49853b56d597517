"""Adaptive concurrent load generation.

Components, leaves first:
- ``profiles``: named pressure levels resolved to worker count and batch size
- ``ramp``: pure linear ramp-up curve
- ``aggregator``: thread-safe phase counters and the real-time reporter
- ``load_tester``: deadline-bound worker pool running one phase
- ``benchmark``: orchestrator sequencing setup, load phases, and teardown
- ``report``: structured summary plus text/JSON rendering
- ``profiler``: resource sampling of the harness process
"""
