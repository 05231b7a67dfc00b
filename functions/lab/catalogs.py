# Copyright 2025 The Studio Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass
from typing import List, Optional

from lab.types import Matrix


@dataclass(frozen=True)
class Parameter:
    id: str
    label_es: str
    default_unit: str
    default_method: str
    default_range: Optional[str] = None
    accredited_default: bool = False


@dataclass(frozen=True)
class Package:
    id: str
    label_es: str
    matrix: str
    parameter_ids: List[str]


WATER_PARAMETERS = [
    Parameter("arsenic", "Arsénico", "mg/L", "EPA 200.8", accredited_default=True),
    Parameter("cadmium", "Cadmio", "mg/L", "EPA 200.8", accredited_default=True),
    Parameter(
        "free_chlorine",
        "Cloro libre residual",
        "mg/L",
        "SM 4500-Cl G",
        accredited_default=True,
    ),
    Parameter("copper", "Cobre", "mg/L", "EPA 200.8", accredited_default=True),
    Parameter("chromium", "Cromo", "mg/L", "EPA 200.8", accredited_default=True),
    Parameter("fluoride", "Fluoruro", "mg/L", "SM 4500-F C", accredited_default=True),
    Parameter("mercury", "Mercurio", "mg/L", "EPA 245.1", accredited_default=True),
    Parameter("nitrates", "Nitratos", "mg/L", "SM 4500-NO3 E", accredited_default=True),
    Parameter("nitrites", "Nitritos", "mg/L", "SM 4500-NO2 B", accredited_default=True),
    Parameter("lead", "Plomo", "mg/L", "EPA 200.8", accredited_default=True),
    Parameter("turbidity", "Turbiedad", "NTU", "EPA 180.1", accredited_default=True),
    Parameter(
        "fecal_coliforms",
        "Coliformes fecales",
        "NMP/100mL",
        "SM 9221 E",
        accredited_default=True,
    ),
    Parameter("cryptosporidium", "Cryptosporidium", "Ooquistes/L", "EPA 1623"),
    Parameter("giardia", "Giardia", "Quistes/L", "EPA 1623"),
]

SOIL_PARAMETERS = [
    Parameter("vanadium", "Vanadio", "mg/kg", "EPA 6010D", accredited_default=True),
    Parameter("nickel", "Níquel", "mg/kg", "EPA 6010D", accredited_default=True),
    Parameter("lead_soil", "Plomo", "mg/kg", "EPA 6010D", accredited_default=True),
    Parameter("tph", "TPH", "mg/kg", "EPA 8015C", accredited_default=True),
    Parameter("pahs", "HAPs", "mg/kg", "EPA 8270E", accredited_default=True),
]

PACKAGES = [
    Package(
        "water_basic",
        "Agua potable básico",
        Matrix.WATER,
        ["free_chlorine", "turbidity", "fecal_coliforms"],
    ),
    Package(
        "water_heavy_metals",
        "Metales pesados",
        Matrix.WATER,
        ["arsenic", "cadmium", "copper", "chromium", "mercury", "lead"],
    ),
    Package(
        "water_micro",
        "Microbiológico",
        Matrix.WATER,
        ["fecal_coliforms", "cryptosporidium", "giardia"],
    ),
    Package(
        "soil_metals", "Metales (V, Ni, Pb)", Matrix.SOIL, ["vanadium", "nickel", "lead_soil"]
    ),
    Package("soil_tph", "Hidrocarburos (TPH)", Matrix.SOIL, ["tph"]),
    Package("soil_pahs", "HAPs", Matrix.SOIL, ["pahs"]),
    Package(
        "soil_basic",
        "Suelo completo básico",
        Matrix.SOIL,
        ["vanadium", "nickel", "lead_soil", "tph", "pahs"],
    ),
]


def parameters_for(matrix: str) -> List[Parameter]:
    return WATER_PARAMETERS if matrix == Matrix.WATER else SOIL_PARAMETERS


def packages_for(matrix: str) -> List[Package]:
    return [package for package in PACKAGES if package.matrix == matrix]


def find_parameter(matrix: str, parameter_id: str) -> Optional[Parameter]:
    return next((p for p in parameters_for(matrix) if p.id == parameter_id), None)


def find_package(package_id: str) -> Optional[Package]:
    return next((p for p in PACKAGES if p.id == package_id), None)
