"""Submission queue module for the Aino.io agent."""

from .submission_queue import MessageType, QueueMessage, SubmissionQueue

__all__ = ["SubmissionQueue", "QueueMessage", "MessageType"]
