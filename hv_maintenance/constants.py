# Reference data: municipalities, service templates, defaults

from datetime import date

from hv_maintenance.schemas.maintenance import (
    Municipality, Region, ServiceType, MaintenanceNature, MaintenanceStatus
)

MUNICIPALITIES = (
    Municipality(id="m1", name="Tabatinga", region=Region.SOLIMOES, lat=-4.23, lng=-69.93),
    Municipality(id="m2", name="Benjamin Constant", region=Region.SOLIMOES, lat=-4.38, lng=-70.03),
    Municipality(id="m3", name="Coari", region=Region.SOLIMOES, lat=-4.08, lng=-63.14),
    Municipality(id="m5", name="Tefé", region=Region.SOLIMOES, lat=-3.35, lng=-64.71),
    Municipality(id="m6", name="Japurá", region=Region.JAPURA, lat=-1.82, lng=-66.93),
    Municipality(id="m7", name="Maraã", region=Region.JAPURA, lat=-1.83, lng=-65.57),
    Municipality(id="m8", name="Eirunepé", region=Region.JURUA, lat=-6.66, lng=-69.87),
    Municipality(id="m9", name="Itamarati", region=Region.JURUA, lat=-6.73, lng=-69.21),
    Municipality(id="m10", name="Carauari", region=Region.JURUA, lat=-4.88, lng=-66.89),
)

MUNICIPALITIES_BY_ID = {m.id: m for m in MUNICIPALITIES}

SERVICE_TEMPLATES = {
    ServiceType.TYPE_50A: (
        "- Manutenção no alimentador 01 e 02\n"
        "- Serviços realizados: limpeza e reapertos\n"
        "- Troca dos silicones dos isoladores\n"
        "- SWG: limpeza e reaperto das conexões\n"
        "- TX (Transformadores): limpeza e reaperto das conexões, verificação se há vazamentos"
    ),
    ServiceType.TYPE_50B: (
        "- Teste de proteções dos relés\n"
        "- Megagem dos transformadores\n"
        "- Megagem de cabos e barramentos"
    ),
}

DEFAULT_STAGE_NAMES = ("Initial Inspection", "Execution", "Finalization")

UNASSIGNED_TECHNICIAN = "unassigned"
COPY_SUFFIX = " (copy)"
NOT_AVAILABLE = "N/A"

# Sample record loaded at startup when SEED_SAMPLE_DATA is on
SAMPLE_RECORDS = [
    {
        "municipality_id": "m1",
        "title": ServiceType.TYPE_50A.value,
        "nature": MaintenanceNature.PREVENTIVE_PROGRAMMED.value,
        "description": "Manutenção preventiva semestral realizada nos ativos de alta tensão em Tabatinga.",
        "date": date(2024, 5, 15),
        "status": MaintenanceStatus.COMPLETED,
        "technician": "João Silva",
        "stages": [
            {
                "id": "stg1",
                "name": "Initial Inspection",
                "description": "Verificação inicial do transformador TX-01 antes da limpeza e reaperto. Presença de fuligem nos isoladores.",
            },
            {
                "id": "stg2",
                "name": "Execution",
                "description": "Realizado reaperto de conexões e limpeza química dos barramentos.",
            },
        ],
    },
]
