"""
Legacy export schema - the JSON document read by process:migrate
"""
import json
from pathlib import Path
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, StrictBool, ValidationError

class LegacyDataError(Exception):
    """The legacy export could not be read or does not match the expected shape"""

class UserInfo(BaseModel):
    xx: Optional[str] = None  # school
    xm: str                   # name
    sfz: Optional[str] = None  # id-number
    zp: Optional[str] = None  # photo
    zy: Optional[str] = None  # major

class OperateTime(BaseModel):
    operateType: Optional[str] = None
    time: float  # epoch seconds

class LegacyUserSettings(BaseModel):
    publicStat: Optional[StrictBool] = None

class LegacyRecord(BaseModel):
    questionDone: List[str] = []
    starQuestions: List[str] = []
    userInfo: UserInfo
    operateTime: OperateTime
    userSettings: Optional[LegacyUserSettings] = None

    @property
    def public_stat(self) -> Optional[bool]:
        if self.userSettings is None:
            return None
        return self.userSettings.publicStat

def parse_legacy_export(raw: Union[str, bytes]) -> Dict[str, LegacyRecord]:
    """Validate the whole export up front; any problem is fatal before a single record is written"""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LegacyDataError(f"Legacy export is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LegacyDataError("Legacy export must be a mapping of id-number to record")

    records = {}
    for id_number, payload in data.items():
        try:
            records[id_number] = LegacyRecord.model_validate(payload)
        except ValidationError as e:
            raise LegacyDataError(f"Legacy record {id_number} is invalid: {e}") from e
    return records

def load_legacy_export(path: Union[str, Path]) -> Dict[str, LegacyRecord]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise LegacyDataError(f"Cannot read legacy export {path}: {e}") from e
    return parse_legacy_export(raw)
