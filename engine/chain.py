"""Signal chain plumbing: compose generators and processing nodes.

A generator maps t -> sample. A node maps sample -> sample (or frame ->
frame) and owns its state. Chains are plain left-to-right composition:

    voice = chain(triangle(10000.0, 440.0), vibrato(SR, 7.0, 2.0))
    stereo = chain(multiplex(voice_a, voice_b), ping_pong(SR, 2.0, 200.0))
"""


def chain(*stages):
    """Compose left to right: chain(f, g, h)(x) == h(g(f(x)))."""
    if not stages:
        raise ValueError("chain needs at least one stage")

    def run(x):
        for stage in stages:
            x = stage(x)
        return x
    return run


def multiplex(left, right):
    """Two generators into one stereo generator: t -> (left(t), right(t))."""
    return lambda t: (left(t), right(t))


class Dual:
    """Run one independent node per channel on stereo frames.

    Each side owns its own delay buffers, so e.g. a stereo vibrato is two
    separately modulated lines rather than one shared buffer.
    """

    def __init__(self, left, right):
        if left is right:
            raise ValueError("left and right nodes must be separate instances")
        self.left = left
        self.right = right

    def process(self, frame):
        l, r = frame
        return self.left(l), self.right(r)

    __call__ = process
