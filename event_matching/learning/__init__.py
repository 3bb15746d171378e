"""Feedback learning: behavior tracking, weight adaptation, insights and cold start."""

from event_matching.learning.behavior import BehaviorTracker, implicit_feedback
from event_matching.learning.cold_start import ColdStartManager, determine_phase, diversity_factor
from event_matching.learning.feedback import FeedbackService, FeedbackSubmission
from event_matching.learning.insights import InsightGenerator
from event_matching.learning.metrics import FeedbackAnalysis, LearningMetrics, LearningReporter
from event_matching.learning.patterns import FeedbackPatterns, analyze_patterns
from event_matching.learning.weights import WeightAdapter, adjust_weights

__all__ = [
    "BehaviorTracker",
    "implicit_feedback",
    "ColdStartManager",
    "determine_phase",
    "diversity_factor",
    "FeedbackService",
    "FeedbackSubmission",
    "InsightGenerator",
    "FeedbackAnalysis",
    "LearningMetrics",
    "LearningReporter",
    "FeedbackPatterns",
    "analyze_patterns",
    "WeightAdapter",
    "adjust_weights",
]
