"""Service exports."""

from app.services.ipdata import AggregateResult, AssigneeValidationError, IPDataAggregator

__all__ = [
	"AggregateResult",
	"AssigneeValidationError",
	"IPDataAggregator",
]
