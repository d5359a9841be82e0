#!/usr/bin/env python3
"""
Tests for change event parsing and notification value types.
"""

import unittest

from notification.events import (
    ChangeEvent,
    MalformedEventError,
    NotificationPriority,
    Operation,
)


class TestChangeEventParsing(unittest.TestCase):

    def test_parses_webhook_body(self):
        event = ChangeEvent.from_payload({
            "table": "tasks",
            "eventType": "INSERT",
            "record": {"id": "t1", "assigned_to": "U1"},
            "oldRecord": None,
        })

        self.assertEqual(event.entity_type, "tasks")
        self.assertEqual(event.operation, Operation.INSERT)
        self.assertEqual(event.record_id, "t1")
        self.assertIsNone(event.old_record)

    def test_accepts_trigger_spelling(self):
        event = ChangeEvent.from_payload({
            "table": "cases",
            "type": "update",
            "record": {"id": 42, "status": "closed"},
            "old_record": {"id": 42, "status": "open"},
        })

        self.assertEqual(event.operation, Operation.UPDATE)
        self.assertEqual(event.record_id, "42")
        self.assertEqual(event.old_record["status"], "open")

    def test_trigger_delete_uses_old_record(self):
        event = ChangeEvent.from_payload({
            "table": "tasks",
            "type": "DELETE",
            "record": None,
            "old_record": {"id": "t1", "title": "File reply", "assigned_to": "U1"},
        })

        self.assertEqual(event.operation, Operation.DELETE)
        self.assertEqual(event.record_id, "t1")
        self.assertEqual(event.new_record["assigned_to"], "U1")
        self.assertEqual(event.old_record["title"], "File reply")

    def test_delete_without_any_row_is_malformed(self):
        with self.assertRaises(MalformedEventError):
            ChangeEvent.from_payload({"table": "tasks", "type": "DELETE", "record": None, "old_record": None})

    def test_null_record_only_allowed_for_delete(self):
        with self.assertRaises(MalformedEventError):
            ChangeEvent.from_payload({
                "table": "tasks", "type": "UPDATE", "record": None, "old_record": {"id": "t1"}
            })

    def test_rejects_malformed_bodies(self):
        bad_bodies = [
            None,
            [],
            "tasks",
            {"eventType": "INSERT", "record": {"id": "1"}},
            {"table": "", "eventType": "INSERT", "record": {"id": "1"}},
            {"table": "tasks", "eventType": "UPSERT", "record": {"id": "1"}},
            {"table": "tasks", "record": {"id": "1"}},
            {"table": "tasks", "eventType": "INSERT"},
            {"table": "tasks", "eventType": "INSERT", "record": {"title": "no id"}},
            {"table": "tasks", "eventType": "UPDATE", "record": {"id": "1"}, "oldRecord": "x"},
        ]
        for body in bad_bodies:
            with self.subTest(body=body):
                with self.assertRaises(MalformedEventError):
                    ChangeEvent.from_payload(body)


class TestNotificationPriority(unittest.TestCase):

    def test_rank_order(self):
        ranks = [p.rank for p in (
            NotificationPriority.LOW,
            NotificationPriority.NORMAL,
            NotificationPriority.HIGH,
            NotificationPriority.URGENT,
        )]
        self.assertEqual(ranks, [0, 1, 2, 3])

    def test_coerce_falls_back_to_normal(self):
        self.assertEqual(NotificationPriority.coerce("URGENT"), NotificationPriority.URGENT)
        self.assertEqual(NotificationPriority.coerce(None), NotificationPriority.NORMAL)
        self.assertEqual(NotificationPriority.coerce("critical"), NotificationPriority.NORMAL)
        self.assertEqual(
            NotificationPriority.coerce(7, default=NotificationPriority.LOW),
            NotificationPriority.LOW
        )


if __name__ == '__main__':
    unittest.main()
