"""Tests for the admin CLI in main.py."""
import unittest
from unittest.mock import Mock, patch

import main
from core.exceptions import NotFoundError


class TestCli(unittest.TestCase):

    def test_parser(self):
        parser = main.build_parser()

        args = parser.parse_args(["update-weight", "codeforces_rating", "--weight", "0.3", "--updated-by", "admin"])
        self.assertEqual(args.key, "codeforces_rating")
        self.assertEqual(args.weight, 0.3)
        self.assertIsNone(args.threshold)
        self.assertEqual(args.updated_by, "admin")

        args = parser.parse_args(["backfill"])
        self.assertEqual(args.status, "UNDER_REVIEW")

        args = parser.parse_args(["requeue", "verification", "verify-1"])
        self.assertEqual((args.queue, args.job_id), ("verification", "verify-1"))

    @patch('main.AppContext')
    @patch('main.load_config')
    def test_backfill_dispatch(self, mock_load_config, mock_context_class):
        context = mock_context_class.build.return_value
        context.admission_service.backfill.return_value = 3

        exit_code = main.main(["backfill", "--status", "PENDING"])

        self.assertEqual(exit_code, 0)
        context.admission_service.backfill.assert_called_once_with(status="PENDING")
        context.close.assert_called_once()

    @patch('main.AppContext')
    @patch('main.load_config')
    def test_refresh_user_all_providers(self, mock_load_config, mock_context_class):
        context = mock_context_class.build.return_value
        context.admission_service.enqueue_refresh.return_value = "job"

        main.main(["refresh-user", "user-1"])

        providers = [c[0][1] for c in context.admission_service.enqueue_refresh.call_args_list]
        self.assertEqual(providers, ["source-control", "competitive-rating", "problem-count"])

    @patch('main.AppContext')
    @patch('main.load_config')
    def test_admission_errors_exit_nonzero(self, mock_load_config, mock_context_class):
        context = mock_context_class.build.return_value
        context.verification_queue = Mock()
        context.verification_queue.name = "verification"
        context.refresh_queue.name = "refresh-data"
        context.verification_queue.requeue_dead_job.side_effect = NotFoundError("Dead job", "verify-1")

        self.assertEqual(main.main(["requeue", "verification", "verify-1"]), 1)

    @patch('main.AppContext')
    @patch('main.load_config')
    def test_requeue_skipped_when_key_pending(self, mock_load_config, mock_context_class):
        context = mock_context_class.build.return_value
        context.verification_queue = Mock()
        context.verification_queue.name = "verification"
        context.refresh_queue.name = "refresh-data"
        context.verification_queue.requeue_dead_job.return_value = None

        with patch('builtins.print') as mock_print:
            self.assertEqual(main.main(["requeue", "verification", "verify-1"]), 0)

        self.assertIn("Skipped verify-1", mock_print.call_args[0][0])

    @patch('main.init_db')
    @patch('main.create_session_factory')
    @patch('main.load_config')
    def test_init_db_needs_no_redis(self, mock_load_config, mock_factory, mock_init_db):
        mock_init_db.return_value = 4

        self.assertEqual(main.main(["init-db"]), 0)

        mock_init_db.assert_called_once_with(mock_factory.return_value, seed_weights=True)
