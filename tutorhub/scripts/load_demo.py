"""
Demo Data Loader

Fills the record store with a generated roster and class history for demos.
Usage: python -m tutorhub.scripts.load_demo --teachers teacher_1 teacher_2 --seed 42
"""
import asyncio
import argparse

from tutorhub.services.class_service import CHILDREN_COLLECTION
from tutorhub.services.demo_data import DemoDataGenerator
from tutorhub.services.session_lifecycle import CLASSES_COLLECTION
from tutorhub.store import RecordStore, create_record_store, record_path


async def clear_demo_data(store: RecordStore):
    """Remove every class and child record"""
    for collection in (CLASSES_COLLECTION, CHILDREN_COLLECTION):
        records = await store.list(collection)
        for key in records:
            await store.remove(record_path(collection, key))
        print(f"✓ Cleared {len(records)} records from {collection}")


async def load_demo(
    backend: str,
    teacher_ids: list,
    students_per_teacher: int,
    weeks: int,
    seed: int = None,
    clear: bool = False,
):
    """
    Generate and write demo records.

    Args:
        backend: Record store backend ("memory" or "redis")
        teacher_ids: Teachers to generate rosters for
        students_per_teacher: Roster size per teacher
        weeks: Weeks of completed class history
        seed: Random seed for reproducible data
        clear: Remove existing classes and children first
    """
    store = await create_record_store(backend)

    try:
        if clear:
            await clear_demo_data(store)

        generator = DemoDataGenerator(
            teacher_ids=teacher_ids,
            students_per_teacher=students_per_teacher,
            weeks_of_history=weeks,
            seed=seed,
        )

        print("\nGenerating roster...")
        children = generator.generate_children()
        for child_id, child in children.items():
            await store.set(record_path(CHILDREN_COLLECTION, child_id), child)
        print(f"  Created {len(children)} children for {len(teacher_ids)} teachers")

        print("\nGenerating classes...")
        classes = generator.generate_classes(children)
        for class_id, record in classes.items():
            await store.set(record_path(CLASSES_COLLECTION, class_id), record)

        completed = sum(1 for record in classes.values() if record["status"] == "completed")
        legacy = sum(
            1 for record in classes.values()
            if record["status"] == "completed" and "evaluation" not in record
        )
        print(f"  Created {len(classes)} classes ({completed} completed, {len(classes) - completed} upcoming)")
        print(f"  {legacy} completed classes carry only a summary string")

        print(f"\n✅ Demo data loaded into '{backend}' store")
        if backend == "memory":
            print("Note: the memory store is discarded when this process exits")
    finally:
        await store.close()


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load demo roster and classes")
    parser.add_argument(
        "--backend",
        "-b",
        choices=["memory", "redis"],
        default="redis",
        help="Record store backend (default: redis)"
    )
    parser.add_argument(
        "--teachers",
        "-t",
        nargs="+",
        default=["teacher_1"],
        help="Teacher ids to generate data for"
    )
    parser.add_argument(
        "--students",
        type=int,
        default=6,
        help="Students per teacher (default: 6)"
    )
    parser.add_argument(
        "--weeks",
        type=int,
        default=12,
        help="Weeks of class history (default: 12)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible data"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Remove existing classes and children first"
    )

    args = parser.parse_args()

    asyncio.run(load_demo(
        backend=args.backend,
        teacher_ids=args.teachers,
        students_per_teacher=args.students,
        weeks=args.weeks,
        seed=args.seed,
        clear=args.clear,
    ))


if __name__ == "__main__":
    main()
