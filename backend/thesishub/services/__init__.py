"""Business services: each wraps an AsyncSession and owns one workflow"""
