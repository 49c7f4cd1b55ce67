from calltree.types import RunRequest


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def request(dispatch_id, function="f", root=None, parent="", creation=None, expiration=None):
    return RunRequest(
        dispatch_id=dispatch_id,
        function=function,
        root_dispatch_id=root if root is not None else dispatch_id,
        parent_dispatch_id=parent,
        creation_time=creation,
        expiration_time=expiration,
    )
