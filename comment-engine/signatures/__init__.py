from signatures.models import SignatureCandidate, SignatureConfig, TimestampFormat, UNDATED
from signatures.extractor import SignatureExtractor, extract_signatures

__all__ = [
    "SignatureCandidate",
    "SignatureConfig",
    "TimestampFormat",
    "UNDATED",
    "SignatureExtractor",
    "extract_signatures",
]
