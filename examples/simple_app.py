from ai_feature_breaker import GuardConfig
from ai_feature_breaker.server import create_app

config = GuardConfig(
    storage={"backend": "sqlite", "path": "circuits.db"},
    features=["Competitor Intelligence", "SWOT Analysis", "Compliance Checker"],
)

app = create_app(config)

# Run: uvicorn examples.simple_app:app --reload
