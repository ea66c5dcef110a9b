import time
import unittest
from datetime import datetime, timezone

from core.scheduler import RunScheduler, SchedulerConfig, SimpleCron


class DummyController:
    def __init__(self) -> None:
        self.started = 0
        self.triggers = []
        self.force_running = False

    def start(self, trigger: str = "manual") -> bool:
        if self.force_running:
            return False
        self.started += 1
        self.triggers.append(trigger)
        return True


class RunSchedulerTest(unittest.TestCase):
    def test_interval_scheduler_triggers_controller(self) -> None:
        controller = DummyController()
        cfg = SchedulerConfig(enabled=True, interval_minutes=0.001)
        scheduler = RunScheduler(controller, cfg)
        scheduler.start()
        time.sleep(0.2)
        scheduler.stop()
        self.assertGreaterEqual(controller.started, 1)
        self.assertEqual("scheduler", controller.triggers[0])

    def test_scheduler_skips_when_controller_busy(self) -> None:
        controller = DummyController()
        controller.force_running = True
        cfg = SchedulerConfig(enabled=True, interval_minutes=0.001)
        scheduler = RunScheduler(controller, cfg)
        scheduler.start()
        time.sleep(0.05)
        scheduler.stop()
        self.assertEqual(controller.started, 0)

    def test_disabled_scheduler_never_starts(self) -> None:
        scheduler = RunScheduler(DummyController(), SchedulerConfig(enabled=False))
        scheduler.start()
        self.assertIsNone(scheduler._thread)

    def test_daily_cron_wait_time(self) -> None:
        cfg = SchedulerConfig(enabled=True, cron="0 6 * * *", timezone="UTC")
        scheduler = RunScheduler(DummyController(), cfg)
        now = datetime(2025, 6, 8, 5, 30, tzinfo=timezone.utc)
        self.assertEqual(30 * 60, scheduler._next_interval_seconds(now))

    def test_config_from_mapping(self) -> None:
        cfg = SchedulerConfig.from_mapping({"enabled": True, "cron": " 0 6 * * 1 ", "interval_minutes": None})
        self.assertTrue(cfg.enabled)
        self.assertEqual("0 6 * * 1", cfg.cron)
        self.assertIsNone(cfg.interval_minutes)
        self.assertEqual("UTC", cfg.timezone)
        self.assertFalse(SchedulerConfig.from_mapping(None).enabled)


class SimpleCronTest(unittest.TestCase):
    # 2025-06-08 is a Sunday
    SUNDAY_NOON = datetime(2025, 6, 8, 12, 0, tzinfo=timezone.utc)

    def test_monday_is_one(self) -> None:
        next_run = SimpleCron("0 6 * * 1").next_after(self.SUNDAY_NOON)
        self.assertEqual(datetime(2025, 6, 9, 6, 0, tzinfo=timezone.utc), next_run)

    def test_sunday_as_zero_or_seven(self) -> None:
        saturday = datetime(2025, 6, 7, 12, 0, tzinfo=timezone.utc)
        expected = datetime(2025, 6, 8, 6, 0, tzinfo=timezone.utc)
        self.assertEqual(expected, SimpleCron("0 6 * * 0").next_after(saturday))
        self.assertEqual(expected, SimpleCron("0 6 * * 7").next_after(saturday))

    def test_step_expression(self) -> None:
        next_run = SimpleCron("*/15 * * * *").next_after(datetime(2025, 6, 8, 12, 7, tzinfo=timezone.utc))
        self.assertEqual(datetime(2025, 6, 8, 12, 15, tzinfo=timezone.utc), next_run)

    def test_invalid_expression(self) -> None:
        with self.assertRaises(ValueError):
            SimpleCron("0 6 * *")
        with self.assertRaises(ValueError):
            SimpleCron("x 6 * * *")
        with self.assertRaises(ValueError):
            SimpleCron("60 6 * * *")
        with self.assertRaises(ValueError):
            SimpleCron("0 6 * * 8")


if __name__ == "__main__":
    unittest.main()
