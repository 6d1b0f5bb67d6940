"""
Tests for ThreadResolver: subject lookup, targeted fetches and reply chains
"""

import unittest
from unittest.mock import MagicMock

from mailthread.modules.email_data import Location
from mailthread.modules.exceptions import (
    FolderSelectError,
    MalformedDateError,
    MessageNotFoundError,
)
from mailthread.modules.thread_index import ThreadIndex
from mailthread.modules.thread_resolver import ThreadResolver
from tests.helpers import FakeConnection, make_raw_email


def _resolver(store, entries):
    index = ThreadIndex()
    for message_id, location in entries:
        index.add(message_id, location)
    resolver = ThreadResolver(store, index)
    resolver.logger = MagicMock()
    return resolver


class TestFindBySubject(unittest.TestCase):

    def test_exact_match_only(self):
        store = FakeConnection({
            "INBOX": [
                (1, make_raw_email(subject="X ", message_id="<space@x>")),
                (2, make_raw_email(subject="X", message_id="<exact@x>")),
            ],
        })
        resolver = _resolver(store, [
            ("<space@x>", Location("INBOX", 1)),
            ("<exact@x>", Location("INBOX", 2)),
        ])

        location, record = resolver.find_by_subject("X")

        self.assertEqual(location, Location("INBOX", 2))
        self.assertEqual(record.subject, "X")

    def test_case_sensitive(self):
        store = FakeConnection({"INBOX": [(1, make_raw_email(subject="Report"))]})
        resolver = _resolver(store, [("<a@x>", Location("INBOX", 1))])

        self.assertIsNone(resolver.find_by_subject("report"))

    def test_folded_subject_matches_unfolded_text(self):
        store = FakeConnection({
            "INBOX": [
                (1, make_raw_email(
                    subject="Quarterly report for the northern region\r\n and the southern one",
                    message_id="<long@x>",
                )),
            ],
        })
        resolver = _resolver(store, [("<long@x>", Location("INBOX", 1))])

        result = resolver.find_by_subject("Quarterly report for the northern region and the southern one")

        self.assertIsNotNone(result)
        self.assertEqual(result[0], Location("INBOX", 1))

    def test_no_match(self):
        store = FakeConnection({"INBOX": [(1, make_raw_email(subject="Other"))]})
        resolver = _resolver(store, [("<a@x>", Location("INBOX", 1))])

        self.assertIsNone(resolver.find_by_subject("Missing"))

    def test_reselects_each_candidate_folder(self):
        store = FakeConnection({
            "INBOX": [(1, make_raw_email(subject="First"))],
            "Sent": [(4, make_raw_email(subject="Wanted"))],
        })
        store.select_folder("Sent")
        store.select_calls.clear()
        resolver = _resolver(store, [
            ("<a@x>", Location("INBOX", 1)),
            ("<b@x>", Location("Sent", 4)),
        ])

        location, _ = resolver.find_by_subject("Wanted")

        self.assertEqual(location, Location("Sent", 4))
        self.assertEqual(store.select_calls, ["INBOX", "Sent"])

    def test_fetch_does_not_mark_seen(self):
        store = FakeConnection({"INBOX": [(1, make_raw_email(subject="X"))]})
        resolver = _resolver(store, [("<a@x>", Location("INBOX", 1))])

        resolver.find_by_subject("X")

        self.assertEqual(store.fetch_calls, [("INBOX", 1, "(UID BODY.PEEK[])")])

    def test_unparsable_candidates_are_skipped(self):
        store = FakeConnection({
            "INBOX": [
                (1, make_raw_email(subject="X", date=None)),
                (2, make_raw_email(subject="X")),
            ],
        })
        resolver = _resolver(store, [
            ("<nodate@x>", Location("INBOX", 1)),
            ("<good@x>", Location("INBOX", 2)),
        ])

        location, _ = resolver.find_by_subject("X")

        self.assertEqual(location, Location("INBOX", 2))
        warning = resolver.logger.warning.call_args
        self.assertEqual(
            warning.kwargs["extra"]["extra_fields"],
            {"folder": "INBOX", "uid": 1, "message_id": "<nodate@x>"},
        )

    def test_unselectable_and_vanished_candidates_are_skipped(self):
        store = FakeConnection(
            {"Gone": [], "INBOX": [(2, make_raw_email(subject="X"))]},
            unselectable=["Gone"],
        )
        resolver = _resolver(store, [
            ("<gone@x>", Location("Gone", 1)),
            ("<expunged@x>", Location("INBOX", 99)),
            ("<good@x>", Location("INBOX", 2)),
        ])

        location, _ = resolver.find_by_subject("X")

        self.assertEqual(location, Location("INBOX", 2))

    def test_folder_filter(self):
        store = FakeConnection({
            "INBOX": [(1, make_raw_email(subject="X"))],
            "Sent": [(2, make_raw_email(subject="X"))],
        })
        resolver = _resolver(store, [
            ("<a@x>", Location("INBOX", 1)),
            ("<b@x>", Location("Sent", 2)),
        ])

        location, _ = resolver.find_by_subject("X", folder="Sent")

        self.assertEqual(location, Location("Sent", 2))
        self.assertNotIn("INBOX", store.select_calls)


class TestFetchRecord(unittest.TestCase):

    def test_missing_uid(self):
        store = FakeConnection({"INBOX": [(1, make_raw_email())]})
        resolver = _resolver(store, [])

        with self.assertRaises(MessageNotFoundError):
            resolver.fetch_record(Location("INBOX", 2))

    def test_unselectable_folder(self):
        store = FakeConnection({"Trash": []}, unselectable=["Trash"])
        resolver = _resolver(store, [])

        with self.assertRaises(FolderSelectError) as ctx:
            resolver.fetch_record(Location("Trash", 1))
        self.assertEqual(ctx.exception.folder, "Trash")

    def test_malformed_date_propagates(self):
        store = FakeConnection({"INBOX": [(1, make_raw_email(date=None))]})
        resolver = _resolver(store, [])

        with self.assertRaises(MalformedDateError):
            resolver.fetch_record(Location("INBOX", 1))

    def test_find_by_message_id(self):
        store = FakeConnection({"INBOX": [(3, make_raw_email(subject="Hit"))]})
        resolver = _resolver(store, [("<a@x>", Location("INBOX", 3))])

        location, record = resolver.find_by_message_id("<a@x>")
        self.assertEqual(location, Location("INBOX", 3))
        self.assertEqual(record.subject, "Hit")
        self.assertIsNone(resolver.find_by_message_id("<missing@x>"))


class TestWalkThread(unittest.TestCase):

    def test_chain_across_folders(self):
        store = FakeConnection({
            "INBOX": [
                (1, make_raw_email(subject="Plan", message_id="<root@x>")),
                (3, make_raw_email(subject="Re: Re: Plan", message_id="<r2@x>", in_reply_to="<r1@x>")),
            ],
            "Sent": [
                (2, make_raw_email(subject="Re: Plan", message_id="<r1@x>", in_reply_to="<root@x>")),
            ],
        })
        resolver = _resolver(store, [
            ("<root@x>", Location("INBOX", 1)),
            ("<r2@x>", Location("INBOX", 3)),
            ("<r1@x>", Location("Sent", 2)),
        ])

        chain = resolver.walk_thread(Location("INBOX", 3))

        self.assertEqual(
            [location for location, _ in chain],
            [Location("INBOX", 3), Location("Sent", 2), Location("INBOX", 1)],
        )
        self.assertEqual(chain[1][1].parent, Location("INBOX", 1))
        self.assertIsNone(chain[-1][1].parent)

    def test_parent_outside_index_ends_chain(self):
        store = FakeConnection({
            "INBOX": [(1, make_raw_email(message_id="<r@x>", in_reply_to="<deleted@x>"))],
        })
        resolver = _resolver(store, [("<r@x>", Location("INBOX", 1))])

        chain = resolver.walk_thread(Location("INBOX", 1))

        self.assertEqual(len(chain), 1)
        self.assertIsNone(chain[0][1].parent)

    def test_reply_cycle_stops(self):
        store = FakeConnection({
            "INBOX": [
                (1, make_raw_email(message_id="<a@x>", in_reply_to="<b@x>")),
                (2, make_raw_email(message_id="<b@x>", in_reply_to="<a@x>")),
            ],
        })
        resolver = _resolver(store, [
            ("<a@x>", Location("INBOX", 1)),
            ("<b@x>", Location("INBOX", 2)),
        ])

        chain = resolver.walk_thread(Location("INBOX", 1))

        self.assertEqual(len(chain), 2)
        resolver.logger.warning.assert_called()


if __name__ == "__main__":
    unittest.main()
