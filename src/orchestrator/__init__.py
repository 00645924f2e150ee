"""
Sentilytics Orchestrator Module
===============================

Orchestration layer for product sentiment analysis.

Components:
    - SentimentAnalysisPipeline: fetch → classify → aggregate → persist
    - CLI: Command-line interface
    - logging_config: Structured logging setup

Usage:
    from src.orchestrator.analysis_pipeline import SentimentAnalysisPipeline

    run = SentimentAnalysisPipeline().analyze_product("B09XXXXX")
"""
