"""The MOS 6502 processor."""

from __future__ import annotations

from typing import Callable, Protocol

from .opcodes import STACK_PAGE, Mode, Opcode, lookup

MAX_ADDRESS = 0xFFFF
MEM_SIZE = MAX_ADDRESS + 1

# Interrupt vectors
INT_NONE = 0x0000
INT_IRQ = 0xFFFE
INT_BRK = INT_IRQ
INT_RESET = 0xFFFC
INT_NMI = 0xFFFA

# Processor status flags
STATUS_FLAG_CARRY = 1 << 0
STATUS_FLAG_ZERO = 1 << 1
STATUS_FLAG_INTERRUPT_DISABLE = 1 << 2
STATUS_FLAG_DECIMAL = 1 << 3
STATUS_FLAG_BREAK = 1 << 4
UNUSED_STATUS_FLAG = 1 << 5
STATUS_FLAG_OVERFLOW = 1 << 6
STATUS_FLAG_NEGATIVE = 1 << 7

_FLAG_CHARS = (
    (STATUS_FLAG_NEGATIVE, "N"),
    (STATUS_FLAG_OVERFLOW, "V"),
    (UNUSED_STATUS_FLAG, "-"),
    (STATUS_FLAG_BREAK, "B"),
    (STATUS_FLAG_DECIMAL, "D"),
    (STATUS_FLAG_INTERRUPT_DISABLE, "I"),
    (STATUS_FLAG_ZERO, "Z"),
    (STATUS_FLAG_CARRY, "C"),
)


class Bus(Protocol):
    def read(self, addr: int) -> int: ...

    def write(self, addr: int, val: int) -> None: ...


class InvalidInstruction(Exception):
    """Raised when the byte at PC is not a known instruction."""


def status_string(status: int) -> str:
    """Render the status register as flag letters, '.' for clear bits."""
    return "".join(ch if status & flag else "." for flag, ch in _FLAG_CHARS)


def encode_bcd(val: int) -> int:
    return (((val // 10) << 4) + (val % 10)) & 0xFF


def decode_bcd(val: int) -> int:
    return (((val >> 4) * 10) + (val & 0x0F)) & 0xFF


def _extra_cycles(addr1: int, addr2: int) -> int:
    return 1 if (addr1 & 0xFF00) != (addr2 & 0xFF00) else 0


class CPU:
    """Machine state and instruction execution for the 6502."""

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.acc = 0
        self.x = 0
        self.y = 0
        self.sp = 0xFD
        self.status = (
            UNUSED_STATUS_FLAG | STATUS_FLAG_BREAK | STATUS_FLAG_INTERRUPT_DISABLE
        )
        self.cycles = 0
        self.pending_interrupt = INT_NONE
        self.pc = self.read16(INT_RESET, Mode.ABSOLUTE)
        self._ops: dict[str, Callable[[Mode], None]] = {
            name: getattr(self, "_op_" + name.lower())
            for name in (
                "ADC AND ASL BCC BCS BEQ BIT BMI BNE BPL BRK BVC BVS CLC CLD CLI "
                "CLV CMP CPX CPY DEC DEX DEY EOR INC INX INY JMP JSR LDA LDX LDY "
                "LSR NOP ORA PHA PHP PLA PLP ROL ROR RTI RTS SBC SEC SED SEI STA "
                "STX STY TAX TAY TSX TXA TXS TYA LAX SAX DCM ISB SLO"
            ).split()
        }

    def __str__(self) -> str:
        op = lookup(self.bus.read(self.pc))
        op_text = str(op) if op else "{, IMPLICIT}"
        return (
            f"A,X,Y: 0x{self.acc:02x}, 0x{self.x:02x}, 0x{self.y:02x}; "
            f"PC: 0x{self.pc:04x}, SP: 0x{self.sp:02x}, "
            f"P: {status_string(self.status)}; OP: {op_text}"
        )

    def current_instruction(self) -> Opcode:
        """Decode the instruction at PC, raising InvalidInstruction if unknown."""
        m = self.bus.read(self.pc)
        op = lookup(m)
        if op is None:
            raise InvalidInstruction(
                f"pc: 0x{self.pc:04x}, inst: 0x{m:02x} - invalid instruction"
            )
        return op

    def mem_range(self, low: int, high: int) -> list[int]:
        """Memory contents from low to high inclusive."""
        return [self.bus.read(a) for a in range(low, high + 1)]

    def read16(self, addr: int, mode: Mode) -> int:
        """Little-endian 16-bit read; indirect X/Y modes wrap in the zero page."""
        lsb = self.bus.read(addr & 0xFFFF)
        addr = (addr + 1) & 0xFFFF
        if mode in (Mode.INDIRECT_X, Mode.INDIRECT_Y):
            addr &= 0x00FF
        msb = self.bus.read(addr)
        return (msb << 8) | lsb

    def write16(self, addr: int, val: int) -> None:
        self.bus.write(addr & 0xFFFF, val & 0xFF)
        self.bus.write((addr + 1) & 0xFFFF, (val >> 8) & 0xFF)

    def operand_addr(self, mode: Mode) -> int:
        """Address of the operand at PC (PC already past the opcode byte)."""
        read = self.bus.read
        pc = self.pc
        if mode in (Mode.ACCUMULATOR, Mode.IMPLICIT):
            raise ValueError(f"{mode.name} addressing mode has no operand address")
        if mode is Mode.IMMEDIATE:
            return pc
        if mode is Mode.ZERO_PAGE:
            return read(pc)
        if mode is Mode.ZERO_PAGE_X:
            return (read(pc) + self.x) & 0xFF
        if mode in (Mode.ZERO_PAGE_Y, Mode.ZERO_PAGE_X_BUT_Y):
            return (read(pc) + self.y) & 0xFF
        if mode is Mode.ABSOLUTE:
            return self.read16(pc, mode)
        if mode in (Mode.ABSOLUTE_X, Mode.ABSOLUTE_Y):
            base = self.read16(pc, mode)
            index = self.x if mode is Mode.ABSOLUTE_X else self.y
            addr = (base + index) & 0xFFFF
            self.cycles += _extra_cycles(base, addr)
            return addr
        if mode is Mode.INDIRECT:
            return self.read16(self.read16(pc, mode), mode)
        if mode is Mode.INDIRECT_X:
            return self.read16((read(pc) + self.x) & 0xFF, mode)
        if mode is Mode.INDIRECT_Y:
            base = self.read16(read(pc), mode)
            addr = (base + self.y) & 0xFFFF
            self.cycles += _extra_cycles(base, addr)
            return addr
        if mode is Mode.RELATIVE:
            offset = read(pc)
            if offset >= 0x80:
                offset -= 0x100
            return (pc + 1 + offset) & 0xFFFF
        raise ValueError("invalid addressing mode")

    def trigger_nmi(self) -> None:
        self.pending_interrupt = INT_NMI

    def trigger_irq(self) -> None:
        if not self.status & STATUS_FLAG_INTERRUPT_DISABLE:
            self.pending_interrupt = INT_IRQ

    def add_dma_cycles(self) -> None:
        self.cycles += 513

    def reset(self) -> None:
        self._flags_on(STATUS_FLAG_INTERRUPT_DISABLE | UNUSED_STATUS_FLAG)
        self.pc = self.read16(INT_RESET, Mode.ABSOLUTE)
        self.cycles = 0

    def inst(self) -> str:
        """The bytes of the instruction at PC, formatted for debugging."""
        op = lookup(self.bus.read(self.pc))
        size = op.size if op else 0
        parts = []
        for i in range(size):
            m = (self.pc + i) & 0xFFFF
            parts.append(f"{m:04x}: 0x{self.bus.read(m):02x} ")
        return "".join(parts)

    def load_mem(self, start: int, data) -> None:
        for i, b in enumerate(data):
            self.bus.write((start + i) & 0xFFFF, b)

    def tick(self) -> None:
        """One machine cycle: pay down cycle debt or execute an instruction."""
        if self.cycles > 0:
            self.cycles -= 1
            return
        self.step()

    def step(self) -> int:
        """Execute one instruction (or pending interrupt); return cycles owed."""
        if self.pending_interrupt != INT_NONE:
            self.push_address(self.pc)
            self.push_stack(self.status)
            self.pc = self.read16(self.pending_interrupt, Mode.ABSOLUTE)
            self._flags_on(STATUS_FLAG_INTERRUPT_DISABLE)
            if self.pending_interrupt == INT_NMI:
                self.cycles = 7
            elif self.pending_interrupt == INT_IRQ:
                self.cycles = 8
            self.pending_interrupt = INT_NONE
            return self.cycles

        op = self.current_instruction()
        self.cycles += op.cycles
        self.pc = (self.pc + 1) & 0xFFFF
        opc = self.pc
        self.execute(op.name, op.mode)
        if self.pc == opc:
            self.pc = (self.pc + op.size - 1) & 0xFFFF
        return self.cycles

    def execute(self, mnemonic: str, mode: Mode) -> None:
        """Run one instruction's operation with PC at its operand."""
        try:
            op = self._ops[mnemonic]
        except KeyError:
            raise ValueError(f"unknown mnemonic {mnemonic!r}") from None
        op(mode)

    # Stack

    def stack_addr(self) -> int:
        return STACK_PAGE + self.sp

    def push_stack(self, val: int) -> None:
        self.bus.write(self.stack_addr(), val & 0xFF)
        self.sp = (self.sp - 1) & 0xFF

    def pop_stack(self) -> int:
        self.sp = (self.sp + 1) & 0xFF
        return self.bus.read(self.stack_addr())

    def push_address(self, addr: int) -> None:
        self.push_stack((addr >> 8) & 0xFF)
        self.push_stack(addr & 0xFF)

    def pop_address(self) -> int:
        lo = self.pop_stack()
        hi = self.pop_stack()
        return (hi << 8) | lo

    # Flag helpers

    def _flags_on(self, mask: int) -> None:
        self.status |= mask

    def _flags_off(self, mask: int) -> None:
        self.status &= ~mask & 0xFF

    def _set_nz(self, n: int) -> None:
        self._flags_off(STATUS_FLAG_NEGATIVE | STATUS_FLAG_ZERO)
        if n == 0:
            self._flags_on(STATUS_FLAG_ZERO)
        if n & STATUS_FLAG_NEGATIVE:
            self._flags_on(STATUS_FLAG_NEGATIVE)

    def _decimal(self) -> bool:
        return bool(self.status & STATUS_FLAG_DECIMAL)

    def _operand(self, mode: Mode) -> int:
        return self.bus.read(self.operand_addr(mode))

    def _branch(self, mask: int, predicate: bool) -> None:
        if bool(self.status & mask) == predicate:
            target = self.operand_addr(Mode.RELATIVE)
            self.cycles += _extra_cycles(target, (self.pc - 1) & 0xFFFF)
            self.cycles += 1
            self.pc = target

    def _add_bcd(self, val: int) -> None:
        res = decode_bcd(self.acc) + decode_bcd(val) + (self.status & STATUS_FLAG_CARRY)
        self._flags_off(STATUS_FLAG_CARRY)
        if res > 99:
            res -= 100
            self._flags_on(STATUS_FLAG_CARRY)
        self.acc = encode_bcd(res)
        self._set_nz(self.acc)

    def _sub_bcd(self, val: int) -> None:
        res = decode_bcd(self.acc) - decode_bcd(val)
        if not self.status & STATUS_FLAG_CARRY:
            res -= 1
        self._flags_on(STATUS_FLAG_CARRY)
        if res < 0:
            res += 100
            self._flags_off(STATUS_FLAG_CARRY)
        self.acc = encode_bcd(res)
        self._set_nz(self.acc)

    def _add_with_overflow(self, b: int) -> None:
        res16 = self.acc + b + (self.status & STATUS_FLAG_CARRY)
        res = res16 & 0xFF
        mask = 0
        if res16 & 0x100:
            mask |= STATUS_FLAG_CARRY
        if (self.acc ^ res) & (b ^ res) & 0x80:
            mask |= STATUS_FLAG_OVERFLOW
        self._flags_off(
            STATUS_FLAG_CARRY | STATUS_FLAG_OVERFLOW | STATUS_FLAG_NEGATIVE | STATUS_FLAG_ZERO
        )
        self._flags_on(mask)
        self.acc = res
        self._set_nz(self.acc)

    def _compare(self, a: int, b: int) -> None:
        self._flags_off(STATUS_FLAG_ZERO | STATUS_FLAG_NEGATIVE | STATUS_FLAG_CARRY)
        self._set_nz((a - b) & 0xFF)
        if a >= b:
            self._flags_on(STATUS_FLAG_CARRY)

    def _shift(self, mode: Mode, fn: Callable[[int], int]) -> tuple[int, int]:
        if mode is Mode.ACCUMULATOR:
            old = self.acc
            self.acc = fn(old) & 0xFF
            return old, self.acc
        addr = self.operand_addr(mode)
        old = self.bus.read(addr)
        self.bus.write(addr, fn(old) & 0xFF)
        return old, self.bus.read(addr)

    def _finish_shift(self, new: int, carry: bool) -> None:
        self._flags_off(STATUS_FLAG_CARRY | STATUS_FLAG_NEGATIVE | STATUS_FLAG_ZERO)
        self._set_nz(new)
        if carry:
            self._flags_on(STATUS_FLAG_CARRY)

    # Instructions

    def _op_adc(self, mode: Mode) -> None:
        v = self._operand(mode)
        if self._decimal():
            self._add_bcd(v)
        else:
            self._add_with_overflow(v)

    def _op_and(self, mode: Mode) -> None:
        self.acc &= self._operand(mode)
        self._set_nz(self.acc)

    def _op_asl(self, mode: Mode) -> None:
        old, new = self._shift(mode, lambda v: v << 1)
        self._finish_shift(new, bool(old & 0x80))

    def _op_bcc(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_CARRY, False)

    def _op_bcs(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_CARRY, True)

    def _op_beq(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_ZERO, True)

    def _op_bit(self, mode: Mode) -> None:
        o = self._operand(mode)
        self._flags_off(STATUS_FLAG_NEGATIVE | STATUS_FLAG_OVERFLOW | STATUS_FLAG_ZERO)
        flags = o & (STATUS_FLAG_NEGATIVE | STATUS_FLAG_OVERFLOW)
        if o & self.acc == 0:
            flags |= STATUS_FLAG_ZERO
        self._flags_on(flags)

    def _op_bmi(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_NEGATIVE, True)

    def _op_bne(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_ZERO, False)

    def _op_bpl(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_NEGATIVE, False)

    def _op_brk(self, mode: Mode) -> None:
        self.push_address((self.pc + 1) & 0xFFFF)
        self.push_stack(self.status | STATUS_FLAG_BREAK)
        self.pc = self.read16(INT_BRK, Mode.ABSOLUTE)
        self._flags_on(STATUS_FLAG_INTERRUPT_DISABLE)

    def _op_bvc(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_OVERFLOW, False)

    def _op_bvs(self, mode: Mode) -> None:
        self._branch(STATUS_FLAG_OVERFLOW, True)

    def _op_clc(self, mode: Mode) -> None:
        self._flags_off(STATUS_FLAG_CARRY)

    def _op_cld(self, mode: Mode) -> None:
        self._flags_off(STATUS_FLAG_DECIMAL)

    def _op_cli(self, mode: Mode) -> None:
        self._flags_off(STATUS_FLAG_INTERRUPT_DISABLE)

    def _op_clv(self, mode: Mode) -> None:
        self._flags_off(STATUS_FLAG_OVERFLOW)

    def _op_cmp(self, mode: Mode) -> None:
        self._compare(self.acc, self._operand(mode))

    def _op_cpx(self, mode: Mode) -> None:
        self._compare(self.x, self._operand(mode))

    def _op_cpy(self, mode: Mode) -> None:
        self._compare(self.y, self._operand(mode))

    def _op_dec(self, mode: Mode) -> None:
        a = self.operand_addr(mode)
        self.bus.write(a, (self.bus.read(a) - 1) & 0xFF)
        self._set_nz(self.bus.read(a))

    def _op_dex(self, mode: Mode) -> None:
        self.x = (self.x - 1) & 0xFF
        self._set_nz(self.x)

    def _op_dey(self, mode: Mode) -> None:
        self.y = (self.y - 1) & 0xFF
        self._set_nz(self.y)

    def _op_eor(self, mode: Mode) -> None:
        self.acc ^= self._operand(mode)
        self._set_nz(self.acc)

    def _op_inc(self, mode: Mode) -> None:
        a = self.operand_addr(mode)
        self.bus.write(a, (self.bus.read(a) + 1) & 0xFF)
        self._set_nz(self.bus.read(a))

    def _op_inx(self, mode: Mode) -> None:
        self.x = (self.x + 1) & 0xFF
        self._set_nz(self.x)

    def _op_iny(self, mode: Mode) -> None:
        self.y = (self.y + 1) & 0xFF
        self._set_nz(self.y)

    def _op_jmp(self, mode: Mode) -> None:
        self.pc = self.operand_addr(mode)

    def _op_jsr(self, mode: Mode) -> None:
        self.push_address((self.pc + 1) & 0xFFFF)
        self.pc = self.operand_addr(mode)

    def _op_lda(self, mode: Mode) -> None:
        self.acc = self._operand(mode)
        self._set_nz(self.acc)

    def _op_ldx(self, mode: Mode) -> None:
        self.x = self._operand(mode)
        self._set_nz(self.x)

    def _op_ldy(self, mode: Mode) -> None:
        self.y = self._operand(mode)
        self._set_nz(self.y)

    def _op_lsr(self, mode: Mode) -> None:
        old, new = self._shift(mode, lambda v: v >> 1)
        self._finish_shift(new, bool(old & 0x01))

    def _op_nop(self, mode: Mode) -> None:
        pass

    def _op_ora(self, mode: Mode) -> None:
        self.acc |= self._operand(mode)
        self._set_nz(self.acc)

    def _op_pha(self, mode: Mode) -> None:
        self.push_stack(self.acc)

    def _op_php(self, mode: Mode) -> None:
        self.push_stack(self.status | STATUS_FLAG_BREAK)

    def _op_pla(self, mode: Mode) -> None:
        self.acc = self.pop_stack()
        self._set_nz(self.acc)

    def _op_plp(self, mode: Mode) -> None:
        self.status = self.pop_stack() & ~STATUS_FLAG_BREAK & 0xFF
        self._flags_on(UNUSED_STATUS_FLAG)

    def _op_rol(self, mode: Mode) -> None:
        carry = self.status & STATUS_FLAG_CARRY
        old, new = self._shift(mode, lambda v: (v << 1) | carry)
        self._finish_shift(new, bool(old & 0x80))

    def _op_ror(self, mode: Mode) -> None:
        carry = self.status & STATUS_FLAG_CARRY
        old, new = self._shift(mode, lambda v: (v >> 1) | (carry << 7))
        self._finish_shift(new, bool(old & 0x01))

    def _op_rti(self, mode: Mode) -> None:
        self.status = self.pop_stack()
        self.pc = self.pop_address()

    def _op_rts(self, mode: Mode) -> None:
        self.pc = (self.pop_address() + 1) & 0xFFFF

    def _op_sbc(self, mode: Mode) -> None:
        v = self._operand(mode)
        if self._decimal():
            self._sub_bcd(v)
        else:
            self._add_with_overflow(~v & 0xFF)

    def _op_sec(self, mode: Mode) -> None:
        self._flags_on(STATUS_FLAG_CARRY)

    def _op_sed(self, mode: Mode) -> None:
        self._flags_on(STATUS_FLAG_DECIMAL)

    def _op_sei(self, mode: Mode) -> None:
        self._flags_on(STATUS_FLAG_INTERRUPT_DISABLE)

    def _op_sta(self, mode: Mode) -> None:
        self.bus.write(self.operand_addr(mode), self.acc)

    def _op_stx(self, mode: Mode) -> None:
        self.bus.write(self.operand_addr(mode), self.x)

    def _op_sty(self, mode: Mode) -> None:
        self.bus.write(self.operand_addr(mode), self.y)

    def _op_tax(self, mode: Mode) -> None:
        self.x = self.acc
        self._set_nz(self.x)

    def _op_tay(self, mode: Mode) -> None:
        self.y = self.acc
        self._set_nz(self.y)

    def _op_tsx(self, mode: Mode) -> None:
        self.x = self.sp
        self._set_nz(self.x)

    def _op_txa(self, mode: Mode) -> None:
        self.acc = self.x
        self._set_nz(self.acc)

    def _op_txs(self, mode: Mode) -> None:
        self.sp = self.x

    def _op_tya(self, mode: Mode) -> None:
        self.acc = self.y
        self._set_nz(self.acc)

    # Undocumented instructions

    def _op_lax(self, mode: Mode) -> None:
        m = self._operand(mode)
        self.acc = m
        self.x = m

    def _op_sax(self, mode: Mode) -> None:
        self.x = ((self.acc & self.x) - self._operand(mode)) & 0xFF

    def _op_dcm(self, mode: Mode) -> None:
        addr = self.operand_addr(mode)
        v = (self.bus.read(addr) - 1) & 0xFF
        self.bus.write(addr, v)
        self._compare(self.acc, v)

    def _op_isb(self, mode: Mode) -> None:
        addr = self.operand_addr(mode)
        self.bus.write(addr, (self.bus.read(addr) + 1) & 0xFF)
        self._op_sbc(mode)

    def _op_slo(self, mode: Mode) -> None:
        self._op_asl(mode)
        self.acc |= self._operand(mode)
        self._set_nz(self.acc)