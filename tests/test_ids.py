from quotevault.ids import SequentialIdGenerator, UUIDGenerator


def test_uuid_generator_is_unique():
    gen = UUIDGenerator()
    ids = {gen.next() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 36 for i in ids)


def test_sequential_generator_is_deterministic():
    gen = SequentialIdGenerator("book")
    assert [gen.next() for _ in range(3)] == ["book-1", "book-2", "book-3"]
    assert SequentialIdGenerator("q", start=10).next() == "q-10"
