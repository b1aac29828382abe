from fingerprint.models import RenderedComment, CommentFingerprint
from fingerprint.builder import FingerprintBuilder, build_fingerprint

__all__ = ["RenderedComment", "CommentFingerprint", "FingerprintBuilder", "build_fingerprint"]
