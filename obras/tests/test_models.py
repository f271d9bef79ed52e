# tests/test_models.py
import datetime
import unittest

from obras.core.models import Expense, ExtractionResult, Message, Project, parse_timestamp


class TestModels(unittest.TestCase):

    def test_parse_timestamp_naive(self):
        self.assertEqual(parse_timestamp("2024-05-10T00:00:00"), datetime.datetime(2024, 5, 10))

    def test_parse_timestamp_with_timezone_becomes_local(self):
        value = parse_timestamp("2024-05-10T12:00:00Z")
        expected = datetime.datetime(2024, 5, 10, 12, tzinfo=datetime.timezone.utc).astimezone().replace(tzinfo=None)
        self.assertEqual(value, expected)
        self.assertIsNone(value.tzinfo)

    def test_parse_timestamp_date_only(self):
        self.assertEqual(parse_timestamp(datetime.date(2024, 5, 10)), datetime.datetime(2024, 5, 10))
        self.assertIsNone(parse_timestamp(None))

    def test_placeholder_ids_are_unique(self):
        first = Message.placeholder("a")
        second = Message.placeholder("a")
        self.assertTrue(first.is_placeholder)
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(first.sender, "user")

    def test_replace_message_by_identity(self):
        placeholder = Message.placeholder("Cimento")
        other = Message.placeholder("Areia")
        project = Project(1, "Moradia", messages=[placeholder, other])

        persisted = Message(10, "Cimento", "user")
        self.assertTrue(project.replace_message(placeholder.id, persisted))

        self.assertEqual([m.id for m in project.messages], [10, other.id])
        self.assertFalse(project.replace_message(placeholder.id, persisted))

    def test_remove_message(self):
        placeholder = Message.placeholder("Cimento")
        project = Project(1, "Moradia", messages=[Message(1, "Olá", "bot"), placeholder])
        project.remove_message(placeholder.id)
        self.assertEqual([m.id for m in project.messages], [1])

    def test_remove_keeps_shared_lists(self):
        placeholder = Message.placeholder("Cimento")
        stale = Project(1, "Moradia", messages=[placeholder],
                        expenses=[Expense(5, "Pá", "Ferramentas", 15.0, datetime.datetime(2024, 5, 11))])
        live = Project(1, "Moradia", expenses=stale.expenses, messages=stale.messages)

        stale.remove_message(placeholder.id)
        stale.remove_expense(5)

        self.assertEqual(live.messages, [])
        self.assertEqual(live.expenses, [])

    def test_extraction_result_flag_is_authoritative(self):
        result = ExtractionResult.from_dict({"isExpense": False, "description": "Cimento",
                                             "category": "Materiais", "amount": 30})
        self.assertFalse(result.is_complete_expense)

    def test_extraction_result_missing_category(self):
        result = ExtractionResult.from_dict({"isExpense": True, "description": "Cimento", "amount": 30})
        self.assertFalse(result.is_complete_expense)


if __name__ == '__main__':
    unittest.main()
