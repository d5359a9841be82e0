#!/usr/bin/env python3
"""
Tests for per-entity notification message building.
"""

import unittest
from unittest.mock import Mock

from notification.events import NotificationCategory, NotificationPriority, Operation
from notification.message_builder import NotificationMessageBuilder, RecordLookup


class MessageBuilderTestCase(unittest.TestCase):

    def setUp(self):
        self.lookup = Mock(spec=RecordLookup)
        self.lookup.display_name.return_value = None
        self.lookup.case_title.return_value = None
        self.builder = NotificationMessageBuilder(self.lookup)

    def build(self, table, operation, record, old=None):
        return self.builder.build(table, operation, record, old)


class TestCaseMessages(MessageBuilderTestCase):

    def test_status_change_wins_over_other_changes(self):
        payload = self.build(
            'cases', Operation.UPDATE,
            {"id": "C1", "case_title": "Sharma v. State", "status": "closed", "assigned_to": "U9"},
            {"id": "C1", "case_title": "Old title", "status": "open", "assigned_to": "U1"},
        )

        self.assertEqual(payload.event_type, 'case_status_changed')
        self.assertEqual(payload.category, NotificationCategory.CASE)
        self.assertIn("open", payload.body)
        self.assertIn("closed", payload.body)
        self.assertEqual(payload.metadata['old_status'], 'open')
        self.assertEqual(payload.metadata['new_status'], 'closed')

    def test_disposed_status_is_high_priority(self):
        payload = self.build(
            'cases', Operation.UPDATE,
            {"id": "C1", "case_title": "Sharma v. State", "status": "disposed"},
            {"id": "C1", "status": "open"},
        )

        self.assertEqual(payload.event_type, 'case_disposed')
        self.assertEqual(payload.priority, NotificationPriority.HIGH)

    def test_assignment_change(self):
        payload = self.build(
            'cases', Operation.UPDATE,
            {"id": "C1", "status": "open", "assigned_to": "U2"},
            {"id": "C1", "status": "open", "assigned_to": "U1"},
        )

        self.assertEqual(payload.event_type, 'case_assigned')
        self.assertEqual(payload.priority, NotificationPriority.HIGH)

    def test_plain_update(self):
        payload = self.build(
            'cases', Operation.UPDATE,
            {"id": "C1", "status": "open", "case_title": "New"},
            {"id": "C1", "status": "open", "case_title": "Old"},
        )

        self.assertEqual(payload.event_type, 'case_updated')
        self.assertEqual(payload.action_url, "/cases/C1")
        self.assertEqual(payload.reference_id, "C1")


class TestTaskMessages(MessageBuilderTestCase):

    def test_insert_uses_record_priority(self):
        payload = self.build(
            'tasks', Operation.INSERT,
            {"id": "t1", "title": "File reply", "priority": "urgent", "due_date": "2026-03-05"},
        )

        self.assertEqual(payload.category, NotificationCategory.TASK)
        self.assertEqual(payload.priority, NotificationPriority.URGENT)
        self.assertEqual(payload.event_type, 'task_assigned')
        self.assertIn("05 Mar 2026", payload.body)

    def test_missing_priority_defaults_to_normal(self):
        payload = self.build('tasks', Operation.INSERT, {"id": "t1", "title": "File reply"})
        self.assertEqual(payload.priority, NotificationPriority.NORMAL)

    def test_completion_names_assignee(self):
        self.lookup.display_name.return_value = "Asha Rao"

        payload = self.build(
            'tasks', Operation.UPDATE,
            {"id": "t1", "title": "File reply", "status": "completed", "assigned_to": "U1"},
            {"id": "t1", "title": "File reply", "status": "pending", "assigned_to": "U1"},
        )

        self.assertEqual(payload.event_type, 'task_completed')
        self.assertIn("Asha Rao", payload.body)
        self.lookup.display_name.assert_called_with("U1")

    def test_reassignment_is_high_priority(self):
        payload = self.build(
            'tasks', Operation.UPDATE,
            {"id": "t1", "title": "File reply", "status": "pending", "assigned_to": "U2", "priority": "low"},
            {"id": "t1", "title": "File reply", "status": "pending", "assigned_to": "U1", "priority": "low"},
        )

        self.assertEqual(payload.event_type, 'task_reassigned')
        self.assertEqual(payload.priority, NotificationPriority.HIGH)


    def test_other_status_change_is_generic_update(self):
        payload = self.build(
            'tasks', Operation.UPDATE,
            {"id": "t1", "title": "File reply", "status": "in_progress", "assigned_to": "U1"},
            {"id": "t1", "title": "File reply", "status": "pending", "assigned_to": "U1"},
        )

        self.assertEqual(payload.event_type, 'task_updated')
        self.assertIn("in_progress", payload.body)

    def test_edit_of_completed_task_is_not_a_completion(self):
        payload = self.build(
            'tasks', Operation.UPDATE,
            {"id": "t1", "title": "File rejoinder", "status": "completed", "assigned_to": "U1"},
            {"id": "t1", "title": "File reply", "status": "completed", "assigned_to": "U1"},
        )

        self.assertEqual(payload.event_type, 'task_updated')
        self.lookup.display_name.assert_not_called()

    def test_urgent_escalation(self):
        payload = self.build(
            'tasks', Operation.UPDATE,
            {"id": "t1", "title": "File reply", "status": "pending", "priority": "urgent"},
            {"id": "t1", "title": "File reply", "status": "pending", "priority": "normal"},
        )

        self.assertEqual(payload.event_type, 'task_priority_changed')
        self.assertEqual(payload.priority, NotificationPriority.URGENT)
        self.assertIn("URGENT", payload.body)


class TestAppointmentMessages(MessageBuilderTestCase):

    def test_insert_notifies(self):
        payload = self.build(
            'appointments', Operation.INSERT,
            {"id": "a1", "client_name": "Mehta", "appointment_date": "2026-03-05", "appointment_time": "10:30"},
        )

        self.assertFalse(payload.suppress)
        self.assertEqual(payload.category, NotificationCategory.APPOINTMENT)
        self.assertIn("Mehta", payload.subject)

    def test_update_and_delete_are_suppressed(self):
        for operation in (Operation.UPDATE, Operation.DELETE):
            with self.subTest(operation=operation):
                payload = self.build(
                    'appointments', operation,
                    {"id": "a1", "client_name": "Mehta"},
                    {"id": "a1", "client_name": "Mehta", "appointment_time": "09:00"},
                )
                self.assertTrue(payload.suppress)


class TestHearingAndDocumentMessages(MessageBuilderTestCase):

    def test_hearing_title_looked_up_from_case(self):
        self.lookup.case_title.return_value = "Sharma v. State"

        payload = self.build(
            'hearings', Operation.INSERT,
            {"id": "h1", "case_id": "C1", "hearing_date": "2026-04-01", "court_name": "High Court"},
        )

        self.assertEqual(payload.event_type, 'hearing_scheduled')
        self.assertEqual(payload.category, NotificationCategory.HEARING)
        self.assertIn("Sharma v. State", payload.body)
        self.assertIn("High Court", payload.body)

    def test_hearing_reschedule(self):
        payload = self.build(
            'hearings', Operation.UPDATE,
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-08"},
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-01"},
        )
        self.assertEqual(payload.event_type, 'hearing_updated')
        self.assertEqual(payload.metadata['old_date'], "2026-04-01")

    def test_hearing_outcome_recorded(self):
        payload = self.build(
            'hearings', Operation.UPDATE,
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-01", "outcome": "Adjourned"},
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-01", "outcome": None},
        )

        self.assertEqual(payload.event_type, 'hearing_outcome_recorded')
        self.assertEqual(payload.metadata['outcome'], "Adjourned")

    def test_next_hearing_set(self):
        payload = self.build(
            'hearings', Operation.UPDATE,
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-01",
             "outcome": "Adjourned", "next_hearing_date": "2026-05-12"},
            {"id": "h1", "case_title": "X", "hearing_date": "2026-04-01", "outcome": "Adjourned"},
        )

        self.assertEqual(payload.event_type, 'next_hearing_set')
        self.assertIn("12 May 2026", payload.body)

    def test_document_upload_without_lookups(self):
        payload = self.build(
            'documents', Operation.INSERT,
            {"id": "d1", "file_name": "petition.pdf", "uploaded_by": "U3"},
        )

        self.assertEqual(payload.event_type, 'document_uploaded')
        self.assertEqual(payload.body, 'A team member uploaded "petition.pdf".')


class TestClientNoteAndOrderMessages(MessageBuilderTestCase):

    def test_client_reassignment_is_high_priority(self):
        payload = self.build(
            'clients', Operation.UPDATE,
            {"id": "K1", "full_name": "Mehta Traders", "assigned_lawyer_id": "L2"},
            {"id": "K1", "full_name": "Mehta Traders", "assigned_lawyer_id": "L1"},
        )

        self.assertEqual(payload.event_type, 'client_assigned')
        self.assertEqual(payload.category, NotificationCategory.CLIENT)
        self.assertEqual(payload.priority, NotificationPriority.HIGH)
        self.assertEqual(payload.metadata['client_id'], "K1")

    def test_client_update_without_reassignment(self):
        payload = self.build(
            'clients', Operation.UPDATE,
            {"id": "K1", "full_name": "Mehta Traders", "phone": "2", "assigned_lawyer_id": "L1"},
            {"id": "K1", "full_name": "Mehta Traders", "phone": "1", "assigned_lawyer_id": "L1"},
        )
        self.assertEqual(payload.event_type, 'client_updated')

    def test_note_shared_names_author(self):
        self.lookup.display_name.return_value = "Asha Rao"

        payload = self.build(
            'notes', Operation.INSERT,
            {"id": "n1", "title": "Call notes", "case_id": "C1", "created_by": "U5"},
        )

        self.assertEqual(payload.event_type, 'note_shared')
        self.assertEqual(payload.category, NotificationCategory.NOTE)
        self.assertEqual(payload.body, 'Asha Rao added a note "Call notes".')
        self.assertEqual(payload.action_url, "/cases/C1")

    def test_note_delete(self):
        payload = self.build('notes', Operation.DELETE, {"id": "n1", "title": "Call notes"})
        self.assertEqual(payload.event_type, 'note_deleted')

    def test_court_order_received(self):
        self.lookup.case_title.return_value = "Sharma v. State"

        payload = self.build(
            'case_orders', Operation.INSERT,
            {"id": "o1", "case_id": "C1", "order_date": "2026-02-20"},
        )

        self.assertEqual(payload.event_type, 'court_order_received')
        self.assertEqual(payload.category, NotificationCategory.HEARING)
        self.assertIn("20 Feb 2026", payload.body)
        self.assertIn("Sharma v. State", payload.body)
        self.lookup.case_title.assert_called_with("C1")

    def test_court_order_update(self):
        payload = self.build(
            'case_orders', Operation.UPDATE,
            {"id": "o1", "case_id": "C1", "order_date": "2026-02-21"},
            {"id": "o1", "case_id": "C1", "order_date": "2026-02-20"},
        )
        self.assertEqual(payload.event_type, 'court_order_updated')
        self.assertIn("a case", payload.body)


class TestGenericMessages(MessageBuilderTestCase):

    def test_unknown_entity_gets_generic_message(self):
        payload = self.build('invoices_v2', Operation.DELETE, {"id": "x1"})

        self.assertEqual(payload.category, NotificationCategory.SYSTEM)
        self.assertEqual(payload.event_type, 'invoices_v2_deleted')
        self.assertFalse(payload.suppress)

    def test_metadata_carries_event_details(self):
        payload = self.build('notes', Operation.INSERT, {"id": "n1", "title": "Call notes", "created_by": "U5"})

        self.assertEqual(payload.metadata['table'], 'notes')
        self.assertEqual(payload.metadata['operation'], 'INSERT')
        self.assertEqual(payload.metadata['record_id'], 'n1')
        self.assertEqual(payload.metadata['actor_id'], 'U5')

    def test_registered_entity_types(self):
        registered = set(NotificationMessageBuilder.list_entity_types())
        self.assertTrue({'cases', 'tasks', 'appointments', 'hearings', 'documents'} <= registered)

    def test_format_date(self):
        self.assertEqual(NotificationMessageBuilder.format_date(None), "upcoming")
        self.assertEqual(NotificationMessageBuilder.format_date("2026-01-09T10:00:00Z"), "09 Jan 2026")
        self.assertEqual(NotificationMessageBuilder.format_date("someday"), "someday")


if __name__ == '__main__':
    unittest.main()
