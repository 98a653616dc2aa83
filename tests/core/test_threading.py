import threading
from concurrent.futures import ThreadPoolExecutor

from observation._core.common.threading import synchronized


def noop(*args, **kwargs):
    pass


class TestThreading:
    def test_attach_with_concurrent_threads_call_setup_once(self, registry):
        size = 16
        barrier = threading.Barrier(size)
        setups = []
        teardowns = []

        def setup(emitter):
            setups.append(emitter)
            return lambda: teardowns.append("clock")

        def attach(_):
            handle = registry.observe("clock", noop)
            barrier.wait()
            handle.attach(setup)
            return handle

        with ThreadPoolExecutor(max_workers=size) as executor:
            handles = tuple(executor.map(attach, range(size)))

        assert len(setups) == 1
        assert len(registry.listeners("clock")) == size

        def detach(handle):
            barrier.wait()
            handle.detach()

        with ThreadPoolExecutor(max_workers=size) as executor:
            tuple(executor.map(detach, handles))

        assert teardowns == ["clock"]
        assert "clock" not in registry

    def test_detach_with_setup_running_in_other_thread(self, registry):
        started = threading.Event()
        release = threading.Event()
        teardowns = []

        def setup(emitter):
            started.set()
            release.wait()
            return lambda: teardowns.append("clock")

        handle = registry.observe("clock", noop)
        thread = threading.Thread(target=handle.attach, args=(setup,))
        thread.start()

        started.wait()
        handle.detach()
        assert teardowns == []

        release.set()
        thread.join()
        assert teardowns == ["clock"]

    def test_synchronized_with_nested_calls_share_lock(self):
        with synchronized() as lock:
            with synchronized() as other:
                assert lock is other
