import json

from taco.config.constants import STANDARD_ABIS_FILEPATH

with open(STANDARD_ABIS_FILEPATH, 'r') as file:
    STANDARD_ABIS = json.loads(file.read())

STANDARD_ABI_CONTRACT_TYPES = set(STANDARD_ABIS)
