"""Request and response schemas for the ThesisHub API"""
