from .monitoring import Metric, Log, Alert, HealthCheck
