"""Approval channel adapters."""

from shippost.adapters.notifications.slack_channel import SlackApprovalChannel

__all__ = ["SlackApprovalChannel"]
