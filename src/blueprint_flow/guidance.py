"""Canned guidance used to answer ``help``, ``ideas`` and ``whatif``.

The texts are static; nothing here depends on the generative backend.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.blueprint_flow.steps import Step
from src.shared.models.blueprint import BlueprintDocument, ChipAction


@dataclass(frozen=True)
class StepGuidance:
    prompt: str
    what: str
    why: str
    tip: str
    ideas: tuple[str, ...] = ()
    whatifs: tuple[str, ...] = ()


GUIDANCE: dict[Step, StepGuidance] = {
    Step.WIZARD_VISION: StepGuidance(
        prompt="What do you hope students take away from this project?",
        what="A sentence or two about the change you want to see in your learners.",
        why="The vision keeps every later choice pointed in the same direction.",
        tip="Think about what students should be able to do, not just know.",
    ),
    Step.WIZARD_SUBJECT: StepGuidance(
        prompt="Which subject or subjects does this project live in?",
        what="The discipline the project is anchored in.",
        why="The subject selects the journey template and vocabulary.",
        tip="Cross-curricular is fine; name the main subject first.",
    ),
    Step.WIZARD_STUDENTS: StepGuidance(
        prompt="Who are your students?",
        what="Grade level plus anything notable about the group.",
        why="Audience and activity suggestions depend on the grade band.",
        tip='Something like "7th grade, mixed reading levels" works well.',
    ),
    Step.WIZARD_LOCATION: StepGuidance(
        prompt="Where will the learning happen? (optional)",
        what="Classroom, lab, outdoors, online or a community site.",
        why="Location shapes which activities are realistic.",
        tip="Say continue to skip.",
    ),
    Step.WIZARD_RESOURCES: StepGuidance(
        prompt="Any resources or partners you can draw on? (optional)",
        what="Materials, tools, experts or organisations available to you.",
        why="Known resources make later suggestions more concrete.",
        tip="Say continue to skip.",
    ),
    Step.WIZARD_SCOPE: StepGuidance(
        prompt="How long will the project run? (optional)",
        what='A duration such as "6 weeks" or "one semester".',
        why="Duration decides how many journey phases are suggested.",
        tip="Without a duration a six-week project is assumed.",
    ),
    Step.IDEATION_CONCEPT: StepGuidance(
        prompt="What is the big idea behind this project?",
        what="A transferable concept students will grapple with.",
        why="The concept statement anchors the driving question and challenge.",
        tip="Good concepts are broad enough to matter beyond the classroom.",
        ideas=(
            "Systems depend on the balance between their parts",
            "Communities shape and are shaped by their environment",
            "Change creates both opportunity and tension",
        ),
        whatifs=(
            "What if the big idea came from a problem in your own town?",
            "What if students chose the concept from three options?",
        ),
    ),
    Step.IDEATION_DRIVING_QUESTION: StepGuidance(
        prompt="What question will drive the inquiry?",
        what="An open-ended question with no single right answer.",
        why="The driving question gives every activity a reason to exist.",
        tip='Start with "How might we..." or "Why does...".',
        ideas=(
            "How might we make our community more resilient?",
            "Why do some ideas spread while others fade?",
            "What makes a place worth protecting?",
        ),
        whatifs=(
            "What if the question were posed by a real client?",
            "What if students rewrote the question halfway through?",
        ),
    ),
    Step.IDEATION_CHALLENGE: StepGuidance(
        prompt="What will students create or do to answer the question?",
        what="An authentic challenge with a real product and audience.",
        why="A concrete challenge turns inquiry into visible work.",
        tip='Name the audience: "...a proposal for the city council".',
        ideas=(
            "Design an exhibit for families at the local library",
            "Produce a podcast series for younger students",
            "Write a proposal for the school board",
        ),
        whatifs=(
            "What if the final product had to be used by someone outside school?",
            "What if teams competed for a real budget?",
        ),
    ),
    Step.IDEATION_CLARIFIER: StepGuidance(
        prompt="Review your concept, driving question and challenge.",
        what="A last look before planning the journey.",
        why="Changes are cheaper now than after phases are planned.",
        tip="Say refine to rework this stage or continue to move on.",
    ),
    Step.JOURNEY_PHASES: StepGuidance(
        prompt="How will the project unfold? Describe the phases.",
        what='Phases in order, e.g. "Investigate: research the problem".',
        why="Phases pace the work and give milestones a home.",
        tip='Type "suggest a journey" for a complete draft.',
        ideas=(
            "Investigate: research the context and interview stakeholders",
            "Design: brainstorm and choose a direction",
            "Build: prototype and gather feedback",
            "Share: present and reflect",
        ),
        whatifs=(
            "What if the journey started with a field visit?",
            "What if the last phase were run entirely by students?",
        ),
    ),
    Step.JOURNEY_ACTIVITIES: StepGuidance(
        prompt="Which activities will students do along the way?",
        what="Concrete learning activities, one per line.",
        why="Activities are where the big idea turns into practice.",
        tip="Aim for at least one activity per phase.",
        ideas=("Expert interview", "Gallery walk critique", "Data collection in the field"),
        whatifs=("What if students designed one of the activities themselves?",),
    ),
    Step.JOURNEY_RESOURCES: StepGuidance(
        prompt="What resources will students need?",
        what="Texts, tools, people and places, one per line.",
        why="Listing resources early surfaces gaps before launch.",
        tip="Include at least one community partner if you can.",
        ideas=("Local museum archive", "Shared project notebook", "Guest speaker from a partner organisation"),
        whatifs=("What if every resource had to be free or borrowed?",),
    ),
    Step.JOURNEY_CLARIFIER: StepGuidance(
        prompt="Review the journey.",
        what="Phases, activities and resources together.",
        why="Deliverables are tied to these phases next.",
        tip="Say refine to rework this stage or continue to move on.",
    ),
    Step.DELIVER_MILESTONES: StepGuidance(
        prompt="What milestones will mark progress?",
        what="Three checkpoints, one per phase.",
        why="Milestones make progress visible to students and to you.",
        tip="Use a numbered list; extra items are trimmed to three.",
        ideas=("Research brief approved", "Prototype tested with users", "Final presentation delivered"),
        whatifs=("What if each milestone were reviewed by a different audience?",),
    ),
    Step.DELIVER_RUBRIC: StepGuidance(
        prompt="How will the work be assessed?",
        what='Rubric criteria as "Criterion: description", one per line.',
        why="Shared criteria tell students what quality looks like.",
        tip="Weights are split evenly and always total 100.",
        ideas=(
            "Content Understanding: accurate use of key concepts",
            "Collaboration: contributes and supports the team",
            "Communication: clear and engaging presentation",
        ),
        whatifs=("What if students co-wrote one of the criteria?",),
    ),
    Step.DELIVER_IMPACT: StepGuidance(
        prompt="Who will see the work, and how will it be shared?",
        what='An audience and a method, e.g. "Audience: parents. Method: exhibition night."',
        why="A real audience raises the stakes and the quality.",
        tip="Missing parts are filled with sensible defaults you can edit later.",
        ideas=("Present to the city council", "Publish through the school website", "Host an exhibition night"),
        whatifs=("What if the audience gave written feedback students had to answer?",),
    ),
    Step.DELIVERABLES_CLARIFIER: StepGuidance(
        prompt="Review milestones, rubric and impact plan.",
        what="The last checkpoint before the blueprint is complete.",
        why="Everything after this is export and delivery.",
        tip="Say continue to finish the blueprint.",
    ),
    Step.COMPLETED: StepGuidance(
        prompt="Your blueprint is complete.",
        what="All stages have content.",
        why="The blueprint can now be exported.",
        tip="Use export to get the JSON document.",
    ),
}


def guidance_for(step: Step) -> StepGuidance:
    return GUIDANCE[step]


def describe_help(step: Step) -> str:
    g = GUIDANCE[step]
    return f"{g.prompt}\n\nWhat: {g.what}\nWhy: {g.why}\nTip: {g.tip}"


def suggestions_for(step: Step, action: ChipAction, doc: BlueprintDocument | None = None) -> list[str]:
    """Starter suggestions for ``ideas`` or ``whatif`` at *step*.

    Ideas for the concept step mention the subject when one is known.
    """
    g = GUIDANCE[step]
    if action is ChipAction.WHATIF:
        return list(g.whatifs)
    if action is not ChipAction.IDEAS:
        return []
    ideas = list(g.ideas)
    subject = doc.wizard_context.subject if doc is not None else ""
    if step is Step.IDEATION_CONCEPT and subject:
        ideas = [f"{idea} (through {subject})" for idea in ideas]
    return ideas
