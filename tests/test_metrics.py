"""
Tests for metric computation (pure functions, no AWS)
"""
import pytest
from datetime import date, datetime, timezone

from achievement_service.logic import metrics


TODAY = date(2025, 3, 10)


class TestStreak:
    
    @pytest.mark.parametrize("days,expected", [
        ({date(2025, 3, 10), date(2025, 3, 9), date(2025, 3, 8)}, 3),
        ({date(2025, 3, 10), date(2025, 3, 7)}, 1),
        (set(), 0),
        ({date(2025, 3, 9)}, 1),
        ({date(2025, 3, 9), date(2025, 3, 8)}, 2),
        ({date(2025, 3, 8), date(2025, 3, 7)}, 0),
    ])
    def test_compute_streak(self, days, expected):
        """Streak anchored on today or yesterday"""
        assert metrics.compute_streak(days, TODAY) == expected
    
    def test_completion_days_ignores_incomplete_and_invalid(self):
        """Incomplete rows and bad timestamps are ignored"""
        history = [
            {'topic_id': '1', 'completed': True, 'completed_at': '2025-03-10T10:00:00+00:00'},
            {'topic_id': '2', 'completed': True, 'completed_at': '2025-03-10T18:00:00Z'},
            {'topic_id': '3', 'completed': False, 'completed_at': '2025-03-09T10:00:00+00:00'},
            {'topic_id': '4', 'completed': True, 'completed_at': 'not-a-date'},
            {'topic_id': '5', 'completed': True, 'completed_at': None},
        ]
        
        assert metrics.completion_days(history, "UTC") == {date(2025, 3, 10)}
    
    def test_completion_days_use_configured_timezone(self):
        """Days are computed in the configured timezone"""
        history = [
            {'topic_id': '1', 'completed': True, 'completed_at': '2025-03-10T01:00:00+00:00'},
        ]
        
        assert metrics.completion_days(history, "America/Sao_Paulo") == {date(2025, 3, 9)}


class TestCompletionCounts:
    
    def test_count_completed_topics(self):
        """Only completed topics count"""
        history = [
            {'topic_id': '1', 'completed': True, 'completed_at': '2025-03-10T10:00:00+00:00'},
            {'topic_id': '2', 'completed': False, 'completed_at': None},
        ]
        
        assert metrics.count_completed_topics(history) == 1
        assert metrics.completed_topic_ids(history) == {'1'}
    
    def test_count_completed_on_day(self):
        """Velocity counts only the given day"""
        history = [
            {'topic_id': str(i), 'completed': True, 'completed_at': f'2025-03-10T0{i}:00:00+00:00'}
            for i in range(5)
        ]
        history.append({'topic_id': '9', 'completed': True, 'completed_at': '2025-03-09T23:59:00+00:00'})
        
        assert metrics.count_completed_on(history, TODAY, "UTC") == 5


class TestModuleCompletion:
    
    def test_complete_and_partial_modules(self):
        """Module complete only when every topic is done"""
        modules = [
            {'id': '1', 'active': True, 'topics': [{'id': '1', 'active': True}, {'id': '2', 'active': True}]},
            {'id': '2', 'active': True, 'topics': [{'id': '3', 'active': True}, {'id': '4', 'active': True}]},
        ]
        
        states = metrics.module_completion(modules, {'1', '2', '3'})
        
        assert states[0] == {'module_id': '1', 'total_topics': 2, 'completed_topics': 2, 'complete': True}
        assert states[1]['complete'] is False
        assert states[1]['completed_topics'] == 1
    
    def test_module_without_topics_never_complete(self):
        """Empty module is never complete"""
        states = metrics.module_completion([{'id': '5', 'active': True, 'topics': []}], set())
        
        assert states[0]['complete'] is False
        assert states[0]['total_topics'] == 0
    
    def test_inactive_topics_and_modules_ignored(self):
        """Inactive topics and modules are ignored"""
        modules = [
            {'id': '1', 'active': True, 'topics': [{'id': '1', 'active': True}, {'id': '2', 'active': False}]},
            {'id': '2', 'active': False, 'topics': [{'id': '3', 'active': True}]},
        ]
        
        states = metrics.module_completion(modules, {'1'})
        
        assert len(states) == 1
        assert states[0]['complete'] is True


class TestSocialAndTimeOfDay:
    
    def test_social_counts_distinct_activities(self):
        """Duplicate and unknown forum activities are ignored"""
        activity = [
            {'activity_id': 'r1', 'activity_type': 'reply'},
            {'activity_id': 'r1', 'activity_type': 'reply'},
            {'activity_id': 'r2', 'activity_type': 'reply'},
            {'activity_id': 'p1', 'activity_type': 'participation'},
            {'activity_id': 'x1', 'activity_type': 'like'},
        ]
        
        assert metrics.count_social_activity(activity) == {
            'forum_replies': 2,
            'forum_participations': 1,
        }
    
    @pytest.mark.parametrize("hour,expected", [
        (0, ['night_owl']),
        (4, ['night_owl']),
        (5, ['early_riser']),
        (7, ['early_riser']),
        (8, []),
        (23, []),
    ])
    def test_time_of_day_windows(self, hour, expected):
        """Hour windows are half-open"""
        assert metrics.time_of_day_conditions(hour) == expected


class TestTimestamps:
    
    def test_naive_timestamp_is_utc(self):
        """Naive timestamps are UTC"""
        parsed = metrics.parse_timestamp("2025-03-10T10:00:00")
        assert parsed == datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)
    
    def test_invalid_timestamp(self):
        """Unparseable timestamps become None"""
        assert metrics.parse_timestamp("yesterday") is None
        assert metrics.parse_timestamp("") is None
    
    def test_invalid_timezone_falls_back_to_utc(self):
        """Unknown timezone falls back to UTC"""
        assert metrics.local_date("2025-03-10T23:30:00+00:00", "Not/AZone") == date(2025, 3, 10)
