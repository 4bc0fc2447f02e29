#!filepath: textlasso/config/data_config.py
from pydantic import BaseModel


class ColumnConfig(BaseModel):
    id: str = "id"
    text: str = "text"
    tag: str = "tag"
    date: str = "date"
    label: str = "label"


class DataConfig(BaseModel):
    columns: ColumnConfig = ColumnConfig()
    positive_label: str = "positive"
    date_format: str | None = None
