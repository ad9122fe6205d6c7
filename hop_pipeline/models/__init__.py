# hop_pipeline/models/__init__.py

# This file makes the model classes directly available from the 'models' package.
# Instead of: from hop_pipeline.models.hop_models import HopRecord
# We can now use: from hop_pipeline.models import HopRecord

from .hop_models import HopRecord, HopTable, NormalizedTable, ScrapeStats
