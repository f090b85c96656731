# Exposes all models to the app
from .maintenance import MaintenanceRecord, MaintenanceStage, MaintenanceImage
