"""SOP Domain Model

SOP 由外部 SOP Provider 持有并修改，本核心只读。
updated_at 在每次编辑时变化，是快照过期检测的依据。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SopStep(BaseModel):
    """SOP 步骤"""

    id: str | None = Field(default=None, description="步骤 ID，缺省时按位置生成")
    text: str = Field(default="", description="步骤说明")
    note: str = Field(default="", description="作者备注")


class Sop(BaseModel):
    """SOP 数据模型"""

    id: str = Field(description="唯一标识")
    title: str = Field(description="SOP 标题")
    folder_id: str | None = Field(default=None, description="所属文件夹")
    steps: list[SopStep] = Field(default_factory=list, description="有序步骤列表")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime | None = Field(default=None, description="最后编辑时间")

    @property
    def last_modified(self) -> datetime:
        """最后修改时间：updated_at 缺省时回退到 created_at"""
        return self.updated_at or self.created_at
