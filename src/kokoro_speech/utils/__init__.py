"""
Utility Modules for kokoro-speech.

    - audio.py: Waveform encoding to WAV/MP3 and MIME types
    - timeit.py: Performance measurement
"""
