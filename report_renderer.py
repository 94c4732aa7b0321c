from dataclasses import asdict, dataclass, replace
from typing import Callable, List, Optional

from schemas import AnalysisResult, Indicator, UserInput
from segmenter import SegmentKind, segment
from session_flow import SessionPhase, SessionState

INTRO_TITLE = "Mind Color Map"
INTRO_TEXT = (
    "Welcome. Let us explore the map of your mind through the lens of numerology "
    "and energetic frequency, turning every pressure into strength and bringing "
    "your vibration back to a state of understanding and pure love."
)
INDICATORS_TITLE = "The 21 Energy Frequencies"


@dataclass(frozen=True)
class HeaderView:
    eyebrow: str
    full_name: str
    birth_date: str
    introduction: str
    main_color_description: str
    main_color_hex: str
    intention: Optional[str] = None


@dataclass(frozen=True)
class IndicatorView:
    title: str
    value: str
    description: Optional[str] = None
    color_hex: Optional[str] = None
    number: Optional[int] = None
    key: int = 0


@dataclass(frozen=True)
class ReadingBlock:
    key: int
    kind: str
    text: str


@dataclass(frozen=True)
class ReportView:
    header: HeaderView
    indicators_title: str
    indicators: List[IndicatorView]
    reading: List[ReadingBlock]
    blessing: str

    def to_dict(self) -> dict:
        return asdict(self)


def indicator_card(indicator: Indicator) -> IndicatorView:
    """Default card: one self-contained view item per indicator."""
    return IndicatorView(
        title=indicator.title,
        value=indicator.value,
        description=indicator.description,
        color_hex=indicator.color_hex,
        number=indicator.number,
    )


def render_reading(full_reading: str) -> List[ReadingBlock]:
    blocks = []
    for position, seg in enumerate(segment(full_reading)):
        if seg.kind is SegmentKind.HEADING:
            blocks.append(ReadingBlock(position, seg.kind.value, seg.text.upper()))
        else:
            blocks.append(ReadingBlock(position, seg.kind.value, seg.text))
    return blocks


def render_report(user_input: UserInput, result: AnalysisResult,
                  card: Callable[[Indicator], IndicatorView] = indicator_card) -> ReportView:
    header = HeaderView(
        eyebrow=f"The Vibration of {user_input.full_name}",
        full_name=user_input.full_name,
        birth_date=user_input.birth_date,
        introduction=result.introduction,
        main_color_description=result.main_color_description,
        main_color_hex=result.main_color_hex,
        intention=user_input.intention or None,
    )
    return ReportView(
        header=header,
        indicators_title=INDICATORS_TITLE,
        indicators=[replace(card(indicator), key=idx) for idx, indicator in enumerate(result.indicators)],
        reading=render_reading(result.full_reading),
        blessing=result.blessing,
    )


def project_state(state: SessionState) -> dict:
    """The view of whatever phase ``state`` is in. Pure, safe to call at any time."""
    if state.phase is SessionPhase.INTRO:
        return {"title": INTRO_TITLE, "text": INTRO_TEXT}
    if state.phase is SessionPhase.INTAKE:
        return {"draft": state.draft.to_dict()}
    if state.phase is SessionPhase.SUBMITTING:
        return {"progress": "indeterminate", "submitted": state.submitted.to_dict()}
    return render_report(state.submitted, state.result).to_dict()
