"""Operator commands for a ThesisHub deployment"""
