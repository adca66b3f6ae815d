"""Schema exports."""

from app.schemas.ipdata import DISCLAIMER, CandidateTraceRead, IPDataResponse

__all__ = [
	"DISCLAIMER",
	"CandidateTraceRead",
	"IPDataResponse",
]
