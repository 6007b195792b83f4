"""Built-in demo catalog shown when no community stories are stored."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from endless_novel.config.schema import StoriesConfig
from endless_novel.stories.models import STATUS_COMPLETED, STATUS_IN_PROGRESS, Story

_CONTENT_1 = "\n\n".join(
    (
        "The ancient kingdom of Eldoria was once a thriving realm of magic and wonder. Nestled between towering mountains and vast forests, it was home to diverse peoples and creatures living in harmony under the wise rule of the Lumina dynasty.",
        "But one fateful night, as stars fell from the sky like tears, the kingdom vanished. Not destroyed by war or calamity—simply gone, as if it had never existed.",
        "Centuries passed, and Eldoria became legend, a bedtime story for children, a myth scholars debated in dusty libraries.",
        "Until now.",
        "Lyra Nightshade, a young historian with a mysterious past, discovered an ancient map hidden in the binding of a forgotten tome. Unlike other supposed \"maps to Eldoria\" that had surfaced over the years, this one changed under moonlight, revealing pathways and landmarks previously invisible.",
        "Armed with the map and her extensive knowledge of Eldorian lore, Lyra embarked on a perilous journey to find the lost kingdom, facing ancient guardians, solving impossible riddles, and uncovering secrets about herself and her connection to the vanished realm.",
        "What she would discover would change not only her destiny but the fate of worlds both seen and unseen.",
    )
)

_CONTENT_2 = "\n\n".join(
    (
        "The Stellaris, humanity's most advanced interstellar vessel, glided silently through the void between solar systems. Its quantum engines barely whispered as they bent spacetime, propelling the massive ship toward uncharted regions of the galaxy.",
        "Captain Elena Reyes stood on the observation deck, the holographic display of their trajectory floating before her. After twenty years of preparation and three years in deep space, they were approaching their destination: the mysterious radio source designated Anomaly-7.",
        "For decades, Earth's most powerful telescopes and signal arrays had detected unusual patterns emanating from this region—patterns too regular to be natural, yet unlike anything in human experience. Some believed it was evidence of advanced alien intelligence. Others warned it could be a trap.",
        "Elena wasn't sure what awaited them, but as the ship's sensors began detecting strange gravitational fluctuations ahead, she knew that humanity was about to cross a threshold from which there might be no return.",
        "\"Captain,\" came the voice of Dr. Marcus Chen, the ship's chief scientist. \"You're going to want to see this. We're receiving... something. It appears to be responding to our presence.\"",
        "Elena felt a chill run down her spine as she headed toward the bridge. Whatever waited ahead, the Stellaris and its crew of three hundred would face it together—the culmination of humanity's greatest journey among the stars.",
    )
)

_CONTENT_3 = "\n\n".join(
    (
        "Detective Morgan Chase had seen her share of strange cases, but nothing prepared her for Ravenwood.",
        "The small town appeared picturesque from the highway—Victorian houses with neat gardens, a quaint main street with family-owned shops, and friendly waves from locals. But beneath this perfect facade, something was terribly wrong.",
        "Six people had vanished in the past year, all under impossible circumstances. Security cameras showed them walking into rooms but never coming out. Some reported seeing the missing individuals in two places simultaneously before they disappeared. And strangest of all, the townspeople seemed oddly resigned to these events, as if they were simply an unavoidable part of life in Ravenwood.",
        "Morgan's investigation led her to the old library, where ancient town records hinted at similar disappearances dating back to the town's founding in 1842. The pattern was always the same: the disappearances would accelerate until reaching a crescendo, then stop completely for exactly fifty years before beginning again.",
        "When Morgan found a daguerreotype photograph from 1893 showing a woman identical to herself standing in front of the town hall, she realized she wasn't in Ravenwood by chance. The town had been waiting for her, and the whispers she heard at night in her rented room weren't just dreams—they were trying to tell her something.",
        "Something that had been buried beneath Ravenwood for centuries.",
    )
)

def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def demo_stories(config: StoriesConfig, now: datetime | None = None) -> list[Story]:
    now = now or datetime.now(timezone.utc)
    return [
        Story(
            id="demo1",
            title="The Lost Kingdom",
            author_name="Jane Writer",
            author_username="janewriter",
            date_shared=_iso(now),
            description=(
                "An epic tale of adventure in a forgotten realm, where magic and mystery await at every turn."
            ),
            genre="fantasy",
            cover_image=config.image_url("community1.jpg"),
            status=STATUS_COMPLETED,
            rating="PG",
            content=_CONTENT_1,
        ),
        Story(
            id="demo2",
            title="Starship Odyssey",
            author_name="Alex Scribe",
            author_username="alexscribe",
            date_shared=_iso(now - timedelta(days=1)),
            description="A journey through the cosmos aboard the most advanced vessel ever created by humanity.",
            genre="scifi",
            cover_image=config.image_url("community3.jpg"),
            status=STATUS_IN_PROGRESS,
            rating="PG-13",
            content=_CONTENT_2,
        ),
        Story(
            id="demo3",
            title="Whispers in the Dark",
            author_name="Sam Storyteller",
            author_username="samstory",
            date_shared=_iso(now - timedelta(days=2)),
            description="A spine-tingling mystery set in a small town where nothing is as it seems.",
            genre="mystery",
            cover_image=config.image_url("community5.jpg"),
            status=STATUS_COMPLETED,
            rating="R",
            content=_CONTENT_3,
        ),
    ]
