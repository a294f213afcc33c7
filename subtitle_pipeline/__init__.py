"""
Whisper Subtitle Generator — Pipeline Package

Processing pipeline for turning media files into SRT subtitles:
  - decoder: libsndfile/FFmpeg decoding and resampling
  - audio_normalizer: 16kHz mono 16-bit PCM conversion
  - asr_worker: Speech-to-text via Faster-Whisper
  - orchestrator: Cancellable transcription with progress reporting
  - srt_writer: Standard SRT file output
  - errors: Error taxonomy and user-facing messages
"""
