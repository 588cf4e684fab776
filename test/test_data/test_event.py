"""Test suite for the event record store."""

import pytest

from larimg.data import Event, InputTag
from larimg.errors import ProductExistsError, ProductNotFoundError


class TestInputTag:
    """Test the parsing and encoding of input tags."""

    @pytest.mark.parametrize(
        "tag, expected",
        [
            ("gaushit", InputTag("gaushit")),
            ("emtrack:emtrack", InputTag("emtrack", "emtrack")),
            ("emtrack::Reco", InputTag("emtrack", "", "Reco")),
            ("a:b:c", InputTag("a", "b", "c")),
        ],
    )
    def test_parse(self, tag, expected):
        """Tags are parsed from their colon-separated encoding."""
        assert InputTag.parse(tag) == expected
        assert InputTag.parse(tag).encode() == tag

    def test_parse_tag(self):
        """Parsing a tag returns it as is."""
        tag = InputTag("gaushit")

        assert InputTag.parse(tag) is tag

    def test_malformed(self):
        """More than three fields is an error."""
        with pytest.raises(ValueError):
            InputTag.parse("a:b:c:d")

    def test_str_and_empty(self):
        """The string form is the encoding."""
        assert str(InputTag("emtrack", "emtrackhit")) == "emtrack:emtrackhit"
        assert InputTag("").empty
        assert not InputTag("gaushit").empty


class TestEvent:
    """Test storing and fetching collections."""

    def test_put_get(self):
        """A stored collection is returned as is."""
        event = Event(run=1, subrun=2, event=3)
        hits = [1, 2, 3]
        event.put(hits, "gaushit")

        assert event.get("gaushit") is hits
        assert event.get(InputTag("gaushit")) is hits
        assert "gaushit" in event
        assert event.keys() == [InputTag("gaushit")]

    def test_instances(self):
        """Collections of one label are separated by their instance name."""
        event = Event()
        event.put("a", "emtrack", "emtrackhit")
        event.put("b", "emtrack")

        assert event.get("emtrack:emtrackhit") == "a"
        assert event.get("emtrack") == "b"

    def test_process_ignored(self):
        """The process name does not take part in the lookup."""
        event = Event()
        event.put("a", "emtrack", "emtrack")

        assert event.get("emtrack:emtrack:Reco") == "a"

    def test_put_twice(self):
        """Collections are written once."""
        event = Event()
        event.put([], "gaushit")

        with pytest.raises(ProductExistsError):
            event.put([], "gaushit")

    def test_get_missing(self):
        """A missing collection raises a key error."""
        event = Event()

        with pytest.raises(ProductNotFoundError):
            event.get("gaushit")
        with pytest.raises(KeyError):
            event.get("gaushit")

        assert event.get_by_label("gaushit") is None
        assert "gaushit" not in event
