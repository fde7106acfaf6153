"""Transaction batching and dispatch module."""

from .event_batcher import MAX_BATCH_SIZE, BatchSender, DispatchLoop, LoopState, can_send_batch, create_batch

__all__ = ["DispatchLoop", "LoopState", "BatchSender", "MAX_BATCH_SIZE", "can_send_batch", "create_batch"]
