"""
Speech Engine Components.

    - catalog.py: Known models and voices
    - engine.py: Engine boundary types, base class and factory
    - engines/: Engine implementations (Kokoro, tone)
"""
