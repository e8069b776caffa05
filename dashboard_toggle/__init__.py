"""Slack bot that starts, stops and reports a service through its web dashboard."""
