"""Save a chain of checkpoints, record pending writes, then resume from the latest.

Run with: python examples/resume_thread.py
"""

from threadstore import SqliteSaver, new_checkpoint_id


def main() -> None:
    with SqliteSaver(":memory:") as saver:
        config = {"thread_id": "demo"}
        for step in range(3):
            checkpoint = {"id": new_checkpoint_id(), "channel_values": {"count": step}}
            config = saver.put(config, checkpoint, {"source": "loop", "step": step})

        # A task produced output but the next checkpoint was never written
        saver.put_writes(config, [("count", 3), ("log", "incremented")], task_id="increment")

        latest = saver.get_tuple({"thread_id": "demo"})
        print(f"latest: {latest.config.checkpoint_id} (parent {latest.parent_config.checkpoint_id})")
        print(f"state: {latest.checkpoint['channel_values']}")
        for write in latest.pending_writes or []:
            print(f"pending: {write.task_id} -> {write.channel} = {write.value!r}")

        history = [item.metadata["step"] for item in saver.list({"thread_id": "demo"})]
        print(f"history (newest first): {history}")
        print(saver.get_stats().to_dict())


if __name__ == "__main__":
    main()
