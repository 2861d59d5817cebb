from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class QuestionType(str, Enum):
	SCALE = "scale"
	TEXT = "text"
	SELECT = "select"
	MULTISELECT = "multiselect"


class Dimension(str, Enum):
	"""The six scored dimensions, in report order."""
	CONTROL = "control"
	CLARITY = "clarity"
	LEVERAGE = "leverage"
	FRICTION = "friction"
	CHANGE_READINESS = "change-readiness"
	AI_INVESTMENT = "ai-investment"


DIMENSION_ORDER: Tuple[Dimension, ...] = tuple(Dimension)

DIMENSION_LABELS: Dict[Dimension, str] = {
	Dimension.CONTROL: "Control",
	Dimension.CLARITY: "Clarity",
	Dimension.LEVERAGE: "Leverage",
	Dimension.FRICTION: "Friction",
	Dimension.CHANGE_READINESS: "Change Readiness",
	Dimension.AI_INVESTMENT: "AI Investment",
}


@dataclass(frozen=True)
class MultiselectSignal:
	# Delta applied once if any of the options is selected
	options: FrozenSet[str]
	delta: float


@dataclass(frozen=True)
class Question:
	id: str
	text: str
	type: QuestionType
	dimension: Optional[Dimension] = None
	options: Tuple[str, ...] = ()
	scale_labels: Optional[Tuple[str, str]] = None
	invert: bool = False
	option_scores: Dict[str, int] = field(default_factory=dict)
	signals: Tuple[MultiselectSignal, ...] = ()
	placeholder: Optional[str] = None
	help_text: Optional[str] = None

	@property
	def scored(self) -> bool:
		return self.dimension is not None and self.type != QuestionType.TEXT


@dataclass(frozen=True)
class Section:
	id: str
	label: str
	description: str
	intro: str
	questions: Tuple[Question, ...]


def _scale(qid: str, text: str, dimension: Optional[Dimension], low: str, high: str, *, invert: bool = False) -> Question:
	return Question(id=qid, text=text, type=QuestionType.SCALE, dimension=dimension, scale_labels=(low, high), invert=invert)


def _select(qid: str, text: str, dimension: Optional[Dimension], scores: Dict[str, int], **kw: Any) -> Question:
	return Question(id=qid, text=text, type=QuestionType.SELECT, dimension=dimension, options=tuple(scores), option_scores=dict(scores), **kw)


def _choice(qid: str, text: str, options: List[str], **kw: Any) -> Question:
	# Unscored select kept for context
	return Question(id=qid, text=text, type=QuestionType.SELECT, options=tuple(options), **kw)


def _multi(qid: str, text: str, options: List[str], **kw: Any) -> Question:
	return Question(id=qid, text=text, type=QuestionType.MULTISELECT, options=tuple(options), **kw)


def _text(qid: str, text: str, dimension: Optional[Dimension] = None, **kw: Any) -> Question:
	return Question(id=qid, text=text, type=QuestionType.TEXT, dimension=dimension, **kw)


SECTIONS: Tuple[Section, ...] = (
	Section(
		id="profile",
		label="Business Profile",
		description="The foundation for your personalized analysis",
		intro="These questions help us understand your business so recommendations come with real numbers, not generic advice.",
		questions=(
			_choice("profile-1", "What is your approximate annual revenue?", [
				"Under $250K", "$250K - $500K", "$500K - $1M", "$1M - $2.5M", "$2.5M - $5M",
				"$5M - $10M", "$10M - $25M", "$25M+", "Prefer not to say",
			], help_text="Used to size ROI projections for recommended improvements"),
			_choice("profile-2", "How many people work in your business (including yourself)?", [
				"Just me (solopreneur)", "2-5 people", "6-10 people", "11-25 people",
				"26-50 people", "51-100 people", "100+ people",
			]),
			_choice("profile-3", "What industry best describes your business?", [
				"Professional Services (consulting, legal, accounting)",
				"Agency (marketing, creative, development)",
				"Construction / Trades",
				"Healthcare / Medical",
				"Retail / E-commerce",
				"Manufacturing / Distribution",
				"Real Estate",
				"Technology / SaaS",
				"Hospitality / Food Service",
				"Other",
			]),
			_text("profile-4", "What is your 12-month revenue goal?", placeholder='e.g., "Grow from $1.2M to $2M"'),
			_choice("profile-5", "How many hours per week do YOU personally work?", [
				"Under 30 hours", "30-40 hours", "40-50 hours", "50-60 hours", "60-70 hours", "70+ hours",
			]),
			_choice("profile-6", "What would you value your time at per hour?", [
				"$50/hour", "$75/hour", "$100/hour", "$150/hour", "$200/hour", "$250/hour", "$300+/hour",
			], help_text="Used to estimate the cost of you doing low-value work"),
		),
	),
	Section(
		id="sales",
		label="Sales & Customers",
		description="How you acquire and retain revenue",
		intro="These questions show how money flows into your business and where the opportunities are.",
		questions=(
			_multi("sales-1", "How do most of your new customers find you? (Select top 2)", [
				"Referrals / Word of mouth",
				"Online search (Google, etc.)",
				"Social media",
				"Paid advertising",
				"Networking / Events",
				"Cold outreach (calls, emails)",
				"Partnerships / Affiliates",
				"Inbound content (blog, podcast, video)",
				"Other",
			], help_text="Customer acquisition channels point at growth levers"),
			_choice("sales-2", "What is your average deal/sale size?", [
				"Under $500", "$500 - $2,000", "$2,000 - $5,000", "$5,000 - $15,000",
				"$15,000 - $50,000", "$50,000 - $100,000", "$100,000+", "Varies too much to say",
			]),
			_choice("sales-3", "Out of 10 qualified leads, how many typically become paying customers?", [
				"1-2 out of 10 (10-20%)",
				"3-4 out of 10 (30-40%)",
				"5-6 out of 10 (50-60%)",
				"7-8 out of 10 (70-80%)",
				"9-10 out of 10 (90%+)",
				"We don't track this",
			], help_text="Close rate reveals sales process efficiency"),
			_choice("sales-4", "How long does it take from first contact to closed deal?", [
				"Same day", "1-7 days", "1-4 weeks", "1-3 months", "3-6 months", "6+ months", "It varies wildly",
			]),
			_choice("sales-5", "What percentage of revenue comes from repeat customers vs. new customers?", [
				"90%+ new customers (transactional)",
				"70% new / 30% repeat",
				"50/50 split",
				"30% new / 70% repeat",
				"90%+ repeat (relationship-based)",
			]),
			_text("sales-6", "What is your biggest constraint on revenue growth right now?",
				placeholder='Be specific: "Not enough leads", "Can\'t close", "Can\'t deliver more", "Don\'t know"...'),
		),
	),
	Section(
		id="tech-stack",
		label="Current Tools",
		description="What systems and tools you already use",
		intro="Your current setup lets recommendations integrate with what you have instead of replacing it.",
		questions=(
			_multi("tech-1", "Which tools do you currently use? (Select all that apply)", [
				"QuickBooks / Xero (accounting)",
				"HubSpot / Salesforce (CRM)",
				"Monday / Asana / ClickUp (project management)",
				"Slack / Teams (communication)",
				"Google Workspace / Microsoft 365",
				"Notion / Confluence (documentation)",
				"Zapier / Make (automation)",
				"ChatGPT / Claude / AI tools",
				"Industry-specific software",
				"Custom-built systems",
				"Mostly spreadsheets",
				"Paper / manual processes",
			]),
			_text("tech-2", "Which of your current tools do you love and want to keep?",
				placeholder="List the tools that are working well for you..."),
			_text("tech-3", "Which tools frustrate you or feel like a waste of money?",
				placeholder="What's not working? What do you pay for but barely use?"),
			_scale("tech-4", "How connected are your systems? Does data flow automatically or require manual transfer?", None,
				"Totally disconnected - lots of copy/paste", "Fully integrated - data flows automatically"),
			_choice("tech-5", "What is your approximate monthly spend on software/tools (excluding payroll)?", [
				"Under $100/month", "$100-$500/month", "$500-$1,000/month", "$1,000-$2,500/month",
				"$2,500-$5,000/month", "$5,000+/month", "No idea",
			]),
		),
	),
	Section(
		id="control",
		label="Control",
		description="How much depends on specific people (especially you)",
		intro="These questions reveal how dependent the business is on specific individuals.",
		questions=(
			_text("control-1", "If you took an unplanned 2-week vacation starting tomorrow, what would break?", Dimension.CONTROL,
				placeholder="Be specific: sales, customer service, approvals, etc."),
			_scale("control-2", "How much of your core business process is documented?", Dimension.CONTROL,
				"Nothing - it's all in people's heads", "Fully documented SOPs anyone could follow"),
			_select("control-3", "If your best employee quit tomorrow, how long to recover?", Dimension.CONTROL, {
				"Less than 1 week": 5,
				"1-4 weeks": 4,
				"1-3 months": 3,
				"3-6 months": 2,
				"More than 6 months": 1,
				"We might not recover": 0,
			}),
			_scale("control-4", "What percentage of decisions require YOUR approval before moving forward?", Dimension.CONTROL,
				"0% - Team is fully empowered", "100% - Everything needs my OK", invert=True),
			_text("control-5", "Which functions are bottlenecked by a single person (including you)?", Dimension.CONTROL),
		),
	),
	Section(
		id="clarity",
		label="Clarity",
		description="Visibility into what's actually happening",
		intro="You can't fix what you can't see. These questions assess visibility into operations.",
		questions=(
			_select("clarity-1", "Without checking anything, do you know your current monthly revenue pace?", Dimension.CLARITY, {
				"Yes, within 5%": 5,
				"Roughly, within 20%": 4,
				"I'd need to check": 3,
				"I'm not sure where to look": 1,
			}),
			_text("clarity-2", "How do you track active projects or orders?", Dimension.CLARITY,
				placeholder="Spreadsheet? Software? Verbal updates? Memory?"),
			_scale("clarity-3", "When a customer asks \"where's my order?\", how long until ANYONE can answer?", Dimension.CLARITY,
				"Instantly - it's all visible", "Hours or days - requires digging", invert=True),
			_scale("clarity-4", "How often are you blindsided by problems that others knew about?", Dimension.CLARITY,
				"Never - issues surface quickly", "Often - I'm always the last to know", invert=True),
			Question(
				id="clarity-5",
				text="Where does your critical business information live?",
				type=QuestionType.MULTISELECT,
				dimension=Dimension.CLARITY,
				options=(
					"One centralized system",
					"CRM system",
					"ERP system",
					"Spreadsheets",
					"Email threads",
					"Paper/physical files",
					"Employee knowledge (not written)",
					"Multiple disconnected tools",
				),
				signals=(
					MultiselectSignal(frozenset({"One centralized system"}), 2),
					MultiselectSignal(frozenset({"CRM system", "ERP system"}), 1),
					MultiselectSignal(frozenset({"Spreadsheets"}), -0.5),
					MultiselectSignal(frozenset({"Email threads"}), -1),
					MultiselectSignal(frozenset({"Paper/physical files"}), -1),
					MultiselectSignal(frozenset({"Employee knowledge (not written)"}), -1),
					MultiselectSignal(frozenset({"Multiple disconnected tools"}), -1),
				),
			),
		),
	),
	Section(
		id="leverage",
		label="Leverage",
		description="Getting more output from the same inputs",
		intro="These questions find where you work harder than you need to.",
		questions=(
			_scale("leverage-1", "What percentage of your time is spent on tasks someone cheaper could do?", Dimension.LEVERAGE,
				"0% - I only do high-value work", "80%+ - I'm doing $20/hr tasks", invert=True),
			_text("leverage-2", "Describe the most repetitive, time-consuming process in your business.", Dimension.LEVERAGE,
				help_text="This often reveals the highest-ROI automation opportunity"),
			_scale("leverage-3", "How much of your work is reactive (responding to issues) vs. proactive (building)?", Dimension.LEVERAGE,
				"90% proactive - I'm building", "90% reactive - I'm firefighting", invert=True),
			_text("leverage-4", "If you could clone yourself, what would the clone do?", Dimension.LEVERAGE),
		),
	),
	Section(
		id="friction",
		label="Friction",
		description="Where work gets stuck, repeated, or wasted",
		intro="Friction is the hidden tax on your business.",
		questions=(
			_text("friction-1", "What is the #1 thing that frustrates you about daily operations?", Dimension.FRICTION),
			_scale("friction-2", "How often is the same information entered into multiple systems?", Dimension.FRICTION,
				"Never - everything is connected", "Constantly - lots of double entry", invert=True),
			_select("friction-3", "How long does it take to onboard a new employee to full productivity?", Dimension.FRICTION, {
				"Less than 1 week": 5,
				"1-2 weeks": 4,
				"1 month": 3,
				"2-3 months": 2,
				"More than 3 months": 1,
				"No clear onboarding process": 1,
			}),
			_text("friction-4", "What are the top 3 reasons work gets stuck or delayed?", Dimension.FRICTION),
			_select("friction-5", "How many hours per week does your team spend hunting for information?", Dimension.FRICTION, {
				"Less than 1 hour": 5,
				"1-3 hours": 4,
				"3-5 hours": 3,
				"5-10 hours": 2,
				"More than 10 hours": 1,
				"No idea": 2,
			}),
		),
	),
	Section(
		id="change-readiness",
		label="Change Readiness",
		description="Your ability to actually implement improvements",
		intro="The best plan is useless if you can't execute it.",
		questions=(
			_select("change-1", "When did you last successfully implement a new system or major process change?", Dimension.CHANGE_READINESS, {
				"Within 3 months": 5,
				"3-6 months ago": 4,
				"6-12 months ago": 3,
				"1-2 years ago": 2,
				"More than 2 years": 1,
				"Never successfully": 0,
			}),
			_text("change-2", "What happened with the last tool or system you tried to implement?", Dimension.CHANGE_READINESS),
			_scale("change-3", "How does your team respond to new technology and processes?", Dimension.CHANGE_READINESS,
				"Resistant - \"we've always done it this way\"", "Excited - eager to try new things"),
			_select("change-4", "Who would own the implementation of new systems? (Be honest)", Dimension.CHANGE_READINESS, {
				"A dedicated ops/admin person": 5,
				"We'd want help implementing": 4,
				"We'd need to hire someone": 3,
				"Me (the owner) - it always falls on me": 2,
				"No one - that's why things don't change": 1,
			}),
			_select("change-6", "If we showed you a clear path to 10 extra hours per week, how fast could you act?", Dimension.CHANGE_READINESS, {
				"Immediately - ready to go": 5,
				"Within a month": 4,
				"Within a quarter": 3,
				"6+ months - need to plan/budget": 2,
				"Honestly? Probably never": 1,
			}),
		),
	),
	Section(
		id="ai-investment",
		label="AI Investment",
		description="How prepared you are to put AI to work",
		intro="These questions gauge current AI spend, understanding and budget readiness.",
		questions=(
			_select("ai-invest-1", "How much does the business spend on AI tools per month today?", Dimension.AI_INVESTMENT, {
				"$2,000+/month": 5,
				"$500-$2,000/month": 4,
				"$100-$500/month": 3,
				"Under $100/month": 2,
				"Not sure": 2,
				"Nothing yet": 1,
			}),
			_scale("ai-invest-2", "How clearly can you name where AI would save your team time?", Dimension.AI_INVESTMENT,
				"No idea where to start", "We have a specific list"),
			_select("ai-invest-3", "Is there budget set aside for AI or automation in the next 12 months?", Dimension.AI_INVESTMENT, {
				"Yes, a defined budget": 5,
				"Yes, informally": 4,
				"Considering it": 3,
				"I don't know": 2,
				"No budget planned": 1,
			}),
			Question(
				id="ai-invest-4",
				text="Which AI tools does your team use today? (Select all that apply)",
				type=QuestionType.MULTISELECT,
				dimension=Dimension.AI_INVESTMENT,
				options=(
					"ChatGPT / Claude / general assistants",
					"AI features inside existing software",
					"Automation platforms (Zapier, Make)",
					"Custom AI integrations",
					"None",
				),
			),
			_text("ai-invest-5", "What would you automate first if budget were not a constraint?", Dimension.AI_INVESTMENT),
		),
	),
	Section(
		id="vision",
		label="Vision",
		description="Where you want to go and what success looks like",
		intro="Final questions so recommendations align with YOUR definition of success.",
		questions=(
			_text("vision-1", "In 12 months, what would make this assessment worth your time?"),
			_text("vision-3", "If you could fix ONE thing about your business, what would it be?"),
			_choice("vision-5", "How do you prefer to work with outside help?", [
				"Give me a plan, I'll implement it myself",
				"Help me implement, then I'll maintain it",
				"Do it for me - I don't have time",
				"Ongoing partnership - keep improving together",
				"Not sure yet - depends on what you recommend",
			]),
		),
	),
)


def list_all_questions() -> List[Question]:
	out: List[Question] = []
	for s in SECTIONS:
		out.extend(s.questions)
	return out


_QUESTIONS_BY_ID: Dict[str, Question] = {q.id: q for q in list_all_questions()}


def get_question_by_id(question_id: str) -> Optional[Question]:
	return _QUESTIONS_BY_ID.get(question_id)


def get_section_by_id(section_id: str) -> Optional[Section]:
	for s in SECTIONS:
		if s.id == section_id:
			return s
	return None


def total_question_count() -> int:
	return len(_QUESTIONS_BY_ID)


def questions_for_dimension(dimension: Dimension) -> List[Question]:
	return [q for q in list_all_questions() if q.dimension == dimension]


def catalog_as_dict() -> List[Dict[str, Any]]:
	"""Public view of the catalog; scoring tables stay server-side."""
	out: List[Dict[str, Any]] = []
	for s in SECTIONS:
		questions = []
		for q in s.questions:
			item: Dict[str, Any] = {"id": q.id, "question": q.text, "type": q.type.value}
			if q.options:
				item["options"] = list(q.options)
			if q.scale_labels:
				item["scaleLabels"] = {"low": q.scale_labels[0], "high": q.scale_labels[1]}
			if q.placeholder:
				item["placeholder"] = q.placeholder
			if q.help_text:
				item["helpText"] = q.help_text
			questions.append(item)
		out.append({"id": s.id, "label": s.label, "description": s.description, "intro": s.intro, "questions": questions})
	return out


def _validate_catalog() -> None:
	seen: set = set()
	for q in list_all_questions():
		if q.id in seen:
			raise ValueError(f"Duplicate question id: {q.id}")
		seen.add(q.id)
		if q.invert and q.type != QuestionType.SCALE:
			raise ValueError(f"{q.id}: invert is only meaningful on scale questions")
		if q.type == QuestionType.SELECT and q.dimension is not None:
			missing = [o for o in q.options if o not in q.option_scores]
			if missing:
				raise ValueError(f"{q.id}: options without a score: {missing}")
		for sig in q.signals:
			unknown = sig.options - set(q.options)
			if unknown:
				raise ValueError(f"{q.id}: signal references unknown options {sorted(unknown)}")


_validate_catalog()
