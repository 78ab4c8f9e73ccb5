"""
Core module for Captcha Autosolver.

Holds the data model, configuration, error taxonomy and the orchestrator
that drives the detect -> filter -> solve -> inject pipeline.

Submodules:
    config: ``SolverSettings`` and ``ProviderConfig`` via Pydantic.
    models: ``Widget``, ``Solution``, ``SolvedResult`` and stage aggregates.
    errors: ``CaptchaError`` exception hierarchy.
    registry: Lazy registry of built-in solution providers.
    orchestrator: ``CaptchaOrchestrator`` pipeline driver.
    logging_setup: Compressed rotating file + safe console logging.
"""
