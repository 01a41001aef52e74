"""CheckCount verification — start, scan and complete commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box, ScanSource
from packing.checkcount.session import CheckCountSession
from packing.domain import logger, packing


@packing.command(part_of="CheckCountSession")
class StartCheckCount:
    box_id = Identifier(required=True)
    user_id = String(required=True, max_length=255)
    total_items_expected = Integer()


@packing.command(part_of="CheckCountSession")
class RecordCheckScan:
    session_id = Identifier(required=True)
    barcode = String(required=True, max_length=255)
    product_name = String(max_length=500)


@packing.command(part_of="CheckCountSession")
class CompleteCheckCount:
    session_id = Identifier(required=True)
    apply_corrections = Boolean(default=False)


@packing.command_handler(part_of=CheckCountSession)
class CheckCountHandler:
    @handle(StartCheckCount)
    def start_check_count(self, command):
        box_repo = current_domain.repository_for(Box)
        box = box_repo.get(command.box_id)

        snapshot = [
            {
                "barcode": requirement.barcode,
                "product_name": requirement.product_name,
                "expected_qty": requirement.required_qty,
                "original_scanned_qty": requirement.scanned_qty,
            }
            for requirement in box.requirements
        ]
        session = CheckCountSession.start(
            job_id=box.job_id,
            box_id=box.id,
            box_number=box.box_number,
            user_id=command.user_id,
            snapshot=snapshot,
        )
        box.open_check_session(session.id)

        if command.total_items_expected is not None and command.total_items_expected != session.total_items_expected:
            logger.warning(
                "check_count_expected_mismatch",
                job_id=str(box.job_id),
                box_number=box.box_number,
                client_value=command.total_items_expected,
                catalog_value=session.total_items_expected,
            )

        box_repo.add(box)
        current_domain.repository_for(CheckCountSession).add(session)
        return str(session.id)

    @handle(RecordCheckScan)
    def record_check_scan(self, command):
        repo = current_domain.repository_for(CheckCountSession)
        session = repo.get(command.session_id)
        row = session.record_scan(command.barcode, product_name=command.product_name)
        repo.add(session)
        return row.to_dict()

    @handle(CompleteCheckCount)
    def complete_check_count(self, command):
        session_repo = current_domain.repository_for(CheckCountSession)
        session = session_repo.get(command.session_id)
        if session.is_complete:
            return str(session.id)

        box_repo = current_domain.repository_for(Box)
        box = box_repo.get(session.box_id)

        discrepant = session.complete(command.apply_corrections)
        if command.apply_corrections:
            for row in discrepant:
                requirement = box.requirement_for(row.barcode)
                if requirement is None:
                    # Extras the box never asked for stay on the session only
                    continue
                target = min(row.check_scanned_qty, requirement.required_qty)
                box.apply_correction(
                    row.barcode,
                    target - requirement.scanned_qty,
                    performed_by=session.user_id,
                    reference=f"{session.id}:{row.barcode}",
                    source=ScanSource.CHECKCOUNT,
                )
        box.close_check_session(session.id)

        session_repo.add(session)
        box_repo.add(box)

        logger.info(
            "check_count_completed",
            job_id=str(session.job_id),
            box_number=session.box_number,
            discrepancies=session.discrepancies_found,
            corrections_applied=bool(command.apply_corrections),
        )
        return str(session.id)
